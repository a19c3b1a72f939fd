import io
import logging
from os import SEEK_END
from struct import unpack
from typing import BinaryIO
from .decoder import Decoder
from .errors import MalformedHeader, SizeMismatch
from .header import CompressionType, parse_header
from .lzss10 import Lzss10Decoder
from .lzss11 import Lzss11Decoder


logger = logging.getLogger(__name__)


DECODERS = {
    CompressionType.LZSS10: Lzss10Decoder,
    CompressionType.LZSS11: Lzss11Decoder,
}

OVERLAY_FOOTER_SIZE = 8
# Same limit as the 24-bit size field of the regular header
MAX_DECOMPRESSED_SIZE = 0xffffff


def run_decoder(decoder: Decoder) -> bytearray:
    """Runs the decoder and checks that exactly the declared size was produced"""
    result = decoder.decompress()
    if decoder.bytes_written != decoder.decompressed_size or len(result) != decoder.decompressed_size:
        raise SizeMismatch("LZSS error: Decompressed {} bytes but the header declares {}".format(decoder.bytes_written, decoder.decompressed_size))
    return result


def decompress(stream: BinaryIO) -> bytearray:
    """Decompresses an LZSS10 or LZSS11 stream including its 4 byte header.
    The stream is left positioned after the last token that was needed."""
    header = parse_header(stream)
    compression_type = header.compression_type
    logger.debug("%s stream, %d bytes decompressed", compression_type.name, header.decompressed_size)
    decoder_class = DECODERS[compression_type]
    return run_decoder(decoder_class(stream, header.decompressed_size))


def decompress_bytes(data: bytes) -> bytearray:
    return decompress(io.BytesIO(data))


def decompress_file(path: str) -> bytearray:
    with open(path, "rb") as f:
        return decompress(f)


def decompress_overlay(stream: BinaryIO) -> bytearray:
    """ARM9 overlays are compressed backwards with LZSS10 and described by a footer:
        u32 end_delta    low 24 bits: size of the compressed region including the footer
                         high 8 bits: size of the footer and its padding
        u32 start_delta  how far the decompressed data extends past the end of the file
    Everything before the compressed region is stored as is."""
    file_size = stream.seek(0, SEEK_END)
    if file_size < OVERLAY_FOOTER_SIZE:
        raise MalformedHeader("LZSS error: Overlay needs a {} byte footer but the file has {} bytes".format(OVERLAY_FOOTER_SIZE, file_size))
    stream.seek(-OVERLAY_FOOTER_SIZE, SEEK_END)
    (end_delta, start_delta) = unpack("<LL", stream.read(OVERLAY_FOOTER_SIZE))
    padding = end_delta >> 24
    end_delta &= 0xffffff
    if end_delta > file_size or padding > end_delta:
        raise MalformedHeader("LZSS error: Overlay footer describes a compressed region of {} bytes with {} bytes of padding in a file of {} bytes".format(end_delta, padding, file_size))
    decompressed_size = start_delta + end_delta
    if decompressed_size > MAX_DECOMPRESSED_SIZE:
        raise MalformedHeader("LZSS error: Overlay footer declares {} decompressed bytes, more than the {} a 24-bit size allows".format(decompressed_size, MAX_DECOMPRESSED_SIZE))
    logger.debug("Overlay footer: %d compressed bytes, %d bytes of padding, %d bytes decompressed", end_delta, padding, decompressed_size)

    stream.seek(-end_delta, SEEK_END)
    compressed = bytearray(stream.read(end_delta - padding))
    compressed.reverse()
    decoder = Lzss10Decoder(io.BytesIO(compressed), decompressed_size, distance_bias=Lzss10Decoder.OVERLAY_DISTANCE_BIAS)
    decompressed = run_decoder(decoder)
    decompressed.reverse()

    stream.seek(0)
    result = bytearray(stream.read(file_size - end_delta))
    result += decompressed
    return result
