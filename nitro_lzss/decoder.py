from struct import unpack
from typing import BinaryIO
from warnings import warn
from .bits import bits
from .errors import TruncatedStream, InvalidBackReference


class Decoder:
    """Control byte loop shared by the LZSS10 and LZSS11 token decoders.
    Subclasses only decide how a back-reference is encoded."""

    def __init__(self, stream: BinaryIO, decompressed_size: int):
        self._stream = stream
        self._write_cursor = 0
        self.decompressed_size = decompressed_size
        self.decompressed_buf = bytearray(decompressed_size)

    @property
    def bytes_written(self) -> int:
        return self._write_cursor

    def _is_full(self) -> bool:
        return self._write_cursor >= self.decompressed_size

    def _read_byte(self) -> int:
        b = self._stream.read(1)
        if len(b) != 1:
            raise TruncatedStream("LZSS error: Stream ended after {} of {} bytes were decompressed".format(self._write_cursor, self.decompressed_size))
        return b[0]

    def _read_u16(self) -> int:
        """Big-endian, unlike the header"""
        b = self._stream.read(2)
        if len(b) != 2:
            raise TruncatedStream("LZSS error: Stream ended inside a back-reference after {} of {} bytes were decompressed".format(self._write_cursor, self.decompressed_size))
        (val, ) = unpack(">H", b)
        return val

    def _read_back_reference(self) -> tuple[int, int]:
        """Returns (distance, length)"""
        raise NotImplementedError

    def _copy(self, distance: int, length: int):
        if distance > self._write_cursor:
            raise InvalidBackReference("LZSS error: Back-reference distance {} reaches before the start of the output ({} bytes written)".format(distance, self._write_cursor))
        remaining = self.decompressed_size - self._write_cursor
        if length > remaining:
            warn("LZSS warning: Back-reference of length {} was cut to {} at the end of the output".format(length, remaining), stacklevel=2)
            length = remaining
        buf = self.decompressed_buf
        src = self._write_cursor - distance
        dst = self._write_cursor
        if distance >= length:
            buf[dst:dst + length] = buf[src:src + length]
        else:
            # Overlapping copy, bytes written by this copy are read again
            for i in range(length):
                buf[dst + i] = buf[src + i]
        self._write_cursor += length

    def _copy_literal(self):
        self.decompressed_buf[self._write_cursor] = self._read_byte()
        self._write_cursor += 1

    def decompress(self) -> bytearray:
        while not self._is_full():
            for flag in bits(self._read_byte()):
                if flag:
                    (distance, length) = self._read_back_reference()
                    self._copy(distance, length)
                else:
                    self._copy_literal()
                if self._is_full():
                    break
        return self.decompressed_buf
