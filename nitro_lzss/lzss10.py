from typing import BinaryIO
from .decoder import Decoder


class Lzss10Decoder(Decoder):
    """Back-references are one big-endian word: 4 bits length, 12 bits distance"""
    MIN_LENGTH = 3
    DISTANCE_BIAS = 1
    # ARM9 overlays store distances with a bias of 3
    OVERLAY_DISTANCE_BIAS = 3

    def __init__(self, stream: BinaryIO, decompressed_size: int, distance_bias: int = DISTANCE_BIAS):
        super().__init__(stream, decompressed_size)
        self.distance_bias = distance_bias

    def _read_back_reference(self) -> tuple[int, int]:
        val = self._read_u16()
        length = (val >> 12) + Lzss10Decoder.MIN_LENGTH
        distance = (val & 0xfff) + self.distance_bias
        return (distance, length)
