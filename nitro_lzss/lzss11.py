from .decoder import Decoder


class Lzss11Decoder(Decoder):
    """Back-references take 2, 3 or 4 bytes. The high nibble of the first byte
    selects the tier:
        0     -> 8 bit length, biased by 0x11
        1     -> 16 bit length, biased by 0x111
        2..15 -> the nibble itself is the length minus one
    The distance is always the low nibble of the last length byte plus one more byte."""
    EXTENDED_LENGTH_BIAS = 0x11
    LONGEST_LENGTH_BIAS = 0x111

    def _read_back_reference(self) -> tuple[int, int]:
        val = self._read_byte()
        indicator = val >> 4
        if indicator == 0:
            length = val << 4
            val = self._read_byte()
            length += (val >> 4) + Lzss11Decoder.EXTENDED_LENGTH_BIAS
        elif indicator == 1:
            length = (val & 0xf) << 12
            length += self._read_byte() << 4
            val = self._read_byte()
            length += (val >> 4) + Lzss11Decoder.LONGEST_LENGTH_BIAS
        else:
            length = indicator + 1
        distance = ((val & 0xf) << 8) + self._read_byte() + 1
        return (distance, length)
