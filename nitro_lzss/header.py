from dataclasses import dataclass
from enum import IntEnum
from struct import unpack
from typing import BinaryIO
from .errors import MalformedHeader, UnsupportedFormat


class CompressionType(IntEnum):
    LZSS10 = 0x10
    LZSS11 = 0x11


@dataclass
class LzssHeader:
    format_tag: int = 0
    decompressed_size: int = 0

    SIZE = 4

    @property
    def compression_type(self) -> CompressionType:
        try:
            return CompressionType(self.format_tag)
        except ValueError:
            raise UnsupportedFormat("LZSS error: Unsupported format tag 0x{:02x}".format(self.format_tag)) from None


def parse_header(stream: BinaryIO) -> LzssHeader:
    """Reads the format tag and the 24-bit little-endian decompressed size.
    The tag is not validated here."""
    raw = stream.read(LzssHeader.SIZE)
    if len(raw) != LzssHeader.SIZE:
        raise MalformedHeader("LZSS error: Header needs {} bytes but only {} were available".format(LzssHeader.SIZE, len(raw)))
    # Only 3 bytes of the size are stored, the top byte is always zero
    (decompressed_size, ) = unpack("<L", raw[1:] + b"\0")
    return LzssHeader(format_tag=raw[0], decompressed_size=decompressed_size)
