from .bits import bits
from .errors import (
    DecompressionError,
    UnsupportedFormat,
    TruncatedStream,
    MalformedHeader,
    InvalidBackReference,
    SizeMismatch)
from .header import CompressionType, LzssHeader, parse_header
from .lzss import decompress, decompress_bytes, decompress_file, decompress_overlay


__all__ = [
    "bits",
    "DecompressionError",
    "UnsupportedFormat",
    "TruncatedStream",
    "MalformedHeader",
    "InvalidBackReference",
    "SizeMismatch",
    "CompressionType",
    "LzssHeader",
    "parse_header",
    "decompress",
    "decompress_bytes",
    "decompress_file",
    "decompress_overlay",
]
