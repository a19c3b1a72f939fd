class DecompressionError(ValueError):
    """Base class of every error raised while decoding LZSS data"""


class UnsupportedFormat(DecompressionError):
    pass


class TruncatedStream(DecompressionError):
    """Input ended while more header or token bytes were required"""


class MalformedHeader(TruncatedStream):
    """Header (or overlay footer) is missing, short or points outside the file"""


class InvalidBackReference(DecompressionError):
    pass


class SizeMismatch(DecompressionError):
    pass
