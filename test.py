import builtins
import errno
import io
import os
import tempfile
import unittest
from struct import pack
from unittest import mock
from nitro_lzss import (
    bits,
    parse_header,
    decompress,
    decompress_bytes,
    decompress_file,
    decompress_overlay,
    CompressionType,
    LzssHeader,
    UnsupportedFormat,
    TruncatedStream,
    MalformedHeader,
    InvalidBackReference,
    SizeMismatch)
from nitro_lzss.cli import main
from nitro_lzss.decoder import Decoder
from nitro_lzss.lzss import run_decoder
from nitro_lzss.lzss10 import Lzss10Decoder
from nitro_lzss.lzss11 import Lzss11Decoder


LZSS10_ABCD = b"\x10\x14\x00\x00\x08abcd\xd0\x03"
LZSS11_ABCD = b"\x11\x14\x00\x00\x08abcd\xf0\x03"
# 264 literals, enough for back-references beyond distance 256
LONG_LITERALS = bytes(range(256)) + bytes(range(8))


def literal_groups(data: bytes) -> bytes:
    """Token stream of all-literal control bytes, data length must be a multiple of 8"""
    stream = bytearray()
    for i in range(0, len(data), 8):
        stream += b"\x00" + data[i:i + 8]
    return bytes(stream)


class TestErrors(unittest.TestCase):
    def test_hierarchy(self):
        self.assertTrue(issubclass(MalformedHeader, TruncatedStream))
        for error in (UnsupportedFormat, TruncatedStream, InvalidBackReference, SizeMismatch):
            self.assertTrue(issubclass(error, ValueError))

    def test_documented_errors_keep_docstrings(self):
        self.assertIn("ended", TruncatedStream.__doc__)
        self.assertIn("footer", MalformedHeader.__doc__)


class TestBits(unittest.TestCase):
    def test_most_significant_bit_first(self):
        self.assertEqual(bits(0x08), (False, False, False, False, True, False, False, False))

    def test_all_set(self):
        self.assertEqual(bits(0xff), (True,) * 8)

    def test_all_clear(self):
        self.assertEqual(bits(0x00), (False,) * 8)

    def test_edges(self):
        self.assertTrue(bits(0x80)[0])
        self.assertTrue(bits(0x01)[7])
        self.assertEqual(sum(bits(0x81)), 2)


class TestHeader(unittest.TestCase):
    def test_size_is_little_endian(self):
        stream = io.BytesIO(b"\x10\x01\x02\x03\xff")
        header = parse_header(stream)
        self.assertEqual(header.format_tag, 0x10)
        self.assertEqual(header.decompressed_size, 0x030201)
        self.assertEqual(stream.tell(), LzssHeader.SIZE)

    def test_largest_size(self):
        header = parse_header(io.BytesIO(b"\x11\xff\xff\xff"))
        self.assertEqual(header.decompressed_size, 0xffffff)
        self.assertEqual(header.compression_type, CompressionType.LZSS11)

    def test_short_header(self):
        with self.assertRaises(MalformedHeader):
            parse_header(io.BytesIO(b"\x10\x01"))

    def test_short_header_is_truncation(self):
        with self.assertRaises(TruncatedStream):
            parse_header(io.BytesIO(b""))

    def test_tag_not_validated_by_parser(self):
        header = parse_header(io.BytesIO(b"\x12\x00\x00\x00"))
        self.assertEqual(header.format_tag, 0x12)
        with self.assertRaises(UnsupportedFormat):
            header.compression_type


class TestLzss10(unittest.TestCase):
    def test_example(self):
        self.assertEqual(decompress_bytes(LZSS10_ABCD), b"abcd" * 5)

    def test_literals_only(self):
        stream = io.BytesIO(b"\x00abcdefgh")
        self.assertEqual(Lzss10Decoder(stream, 8).decompress(), b"abcdefgh")

    def test_literals_across_control_bytes(self):
        stream = io.BytesIO(b"\x00abcdefgh\x00i")
        self.assertEqual(Lzss10Decoder(stream, 9).decompress(), b"abcdefghi")

    def test_zero_size_reads_nothing(self):
        stream = io.BytesIO(b"\x00")
        self.assertEqual(len(Lzss10Decoder(stream, 0).decompress()), 0)
        self.assertEqual(stream.tell(), 0)

    def test_overlapping_copy(self):
        # One literal repeated by a distance 1 back-reference of length 18
        stream = io.BytesIO(b"\x40a\xf0\x00")
        self.assertEqual(Lzss10Decoder(stream, 19).decompress(), b"a" * 19)

    def test_stops_mid_control_byte(self):
        stream = io.BytesIO(b"\x00abc\xff\xff")
        self.assertEqual(Lzss10Decoder(stream, 3).decompress(), b"abc")
        self.assertEqual(stream.tell(), 4)

    def test_overlay_distance_bias(self):
        stream = io.BytesIO(b"\x10xyz\xf0\x00")
        decoder = Lzss10Decoder(stream, 21, distance_bias=Lzss10Decoder.OVERLAY_DISTANCE_BIAS)
        self.assertEqual(decoder.decompress(), b"xyz" * 7)

    def test_truncated_literal(self):
        with self.assertRaises(TruncatedStream):
            decompress_bytes(b"\x10\x08\x00\x00\x00ab")

    def test_truncated_control_byte(self):
        with self.assertRaises(TruncatedStream):
            decompress_bytes(b"\x10\x01\x00\x00")

    def test_truncated_back_reference(self):
        with self.assertRaises(TruncatedStream):
            decompress_bytes(LZSS10_ABCD[:-1])

    def test_distance_before_start(self):
        with self.assertRaises(InvalidBackReference):
            decompress_bytes(b"\x10\x04\x00\x00\x40a\x00\x01")

    def test_back_reference_cut_at_end(self):
        with self.assertWarns(UserWarning):
            result = decompress_bytes(b"\x10\x06\x00\x00\x20ab\xf0\x01")
        self.assertEqual(result, b"ababab")

    def test_distance_uses_upper_bits(self):
        # 0x0100 gives length 3 and distance 0x100 + 1 = 257
        stream = io.BytesIO(literal_groups(LONG_LITERALS) + b"\x80\x01\x00")
        expected = LONG_LITERALS + LONG_LITERALS[7:10]
        self.assertEqual(Lzss10Decoder(stream, len(expected)).decompress(), expected)


class TestLzss11(unittest.TestCase):
    def test_example(self):
        self.assertEqual(decompress_bytes(LZSS11_ABCD), b"abcd" * 5)

    def test_literals_only(self):
        stream = io.BytesIO(b"\x00abcdefgh")
        self.assertEqual(Lzss11Decoder(stream, 8).decompress(), b"abcdefgh")

    def test_zero_size(self):
        self.assertEqual(len(Lzss11Decoder(io.BytesIO(b"\x00"), 0).decompress()), 0)

    def test_short_length(self):
        stream = io.BytesIO(b"\x08abcd\xf0\x03")
        self.assertEqual(Lzss11Decoder(stream, 20).decompress(), b"abcd" * 5)

    def test_extended_length(self):
        # (0x01 << 4) + (0x30 >> 4) + 0x11 = 36
        stream = io.BytesIO(b"\x08abcd\x01\x30\x03")
        self.assertEqual(Lzss11Decoder(stream, 40).decompress(), b"abcd" * 10)

    def test_longest_length(self):
        # (0x0 << 12) + (0x07 << 4) + (0xb0 >> 4) + 0x111 = 396
        stream = io.BytesIO(b"\x08abcd\x10\x07\xb0\x03")
        self.assertEqual(Lzss11Decoder(stream, 400).decompress(), b"abcd" * 100)

    def test_longest_length_uses_low_nibble(self):
        # (0x1 << 12) + (0x00 << 4) + (0x00 >> 4) + 0x111 = 4369, distance 1
        stream = io.BytesIO(b"\x40a\x11\x00\x00\x00")
        self.assertEqual(Lzss11Decoder(stream, 4370).decompress(), b"a" * 4370)

    def test_distance_uses_upper_nibble(self):
        # Indicator 3 gives length 4, (0x1 << 8) + 0x00 + 1 = 257
        stream = io.BytesIO(literal_groups(LONG_LITERALS) + b"\x80\x31\x00")
        expected = LONG_LITERALS + LONG_LITERALS[7:11]
        self.assertEqual(Lzss11Decoder(stream, len(expected)).decompress(), expected)

    def test_distance_uses_low_nibble(self):
        # Indicator 3 gives length 4, low nibble 0 and next byte 0 give distance 1
        stream = io.BytesIO(b"\x40a\x30\x00")
        self.assertEqual(Lzss11Decoder(stream, 5).decompress(), b"aaaaa")

    def test_distance_before_start(self):
        with self.assertRaises(InvalidBackReference):
            decompress_bytes(b"\x11\x04\x00\x00\x80\x30\x00")

    def test_truncated_extended_length(self):
        with self.assertRaises(TruncatedStream):
            decompress_bytes(b"\x11\x28\x00\x00\x08abcd\x01\x30")

    def test_truncated_literal(self):
        with self.assertRaises(TruncatedStream):
            decompress_bytes(b"\x11\x08\x00\x00\x00abc")


class TestDecompress(unittest.TestCase):
    def test_size_matches_header(self):
        for data in (LZSS10_ABCD, LZSS11_ABCD):
            header = parse_header(io.BytesIO(data))
            self.assertEqual(len(decompress_bytes(data)), header.decompressed_size)

    def test_idempotent(self):
        first = decompress(io.BytesIO(bytes(LZSS11_ABCD)))
        second = decompress(io.BytesIO(bytes(LZSS11_ABCD)))
        self.assertEqual(first, second)
        self.assertIsNot(first, second)

    def test_zero_size(self):
        stream = io.BytesIO(b"\x10\x00\x00\x00")
        self.assertEqual(decompress(stream), b"")
        self.assertEqual(stream.tell(), 4)

    def test_trailing_padding_ignored(self):
        self.assertEqual(decompress_bytes(LZSS10_ABCD + b"\x00\x00"), b"abcd" * 5)

    def test_unsupported_format(self):
        with self.assertRaises(UnsupportedFormat):
            decompress_bytes(b"\x12\x04\x00\x00\x00abcd")

    def test_single_byte_stream(self):
        with self.assertRaises((UnsupportedFormat, TruncatedStream)):
            decompress_bytes(b"\x00")

    def test_size_mismatch(self):
        class LazyDecoder(Decoder):
            def decompress(self):
                return self.decompressed_buf
        with self.assertRaises(SizeMismatch):
            run_decoder(LazyDecoder(io.BytesIO(b""), 4))

    def test_decompress_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "abcd.lz")
            with open(path, "wb") as f:
                f.write(LZSS10_ABCD)
            self.assertEqual(decompress_file(path), b"abcd" * 5)


def make_overlay() -> bytes:
    # Reversed token stream is 10 'x' 'y' 'z' f0 00, which decodes to "xyz" * 7
    compressed = b"\x00\xf0zyx\x10"
    padding = 8
    end_delta = len(compressed) + padding
    start_delta = 21 - end_delta
    return b"HEAD" + compressed + pack("<LL", end_delta | (padding << 24), start_delta)


class TestOverlay(unittest.TestCase):
    def test_overlay(self):
        self.assertEqual(decompress_overlay(io.BytesIO(make_overlay())), b"HEAD" + b"zyx" * 7)

    def test_too_short_for_footer(self):
        with self.assertRaises(MalformedHeader):
            decompress_overlay(io.BytesIO(b"\x00" * 4))

    def test_footer_outside_file(self):
        with self.assertRaises(MalformedHeader):
            decompress_overlay(io.BytesIO(pack("<LL", 100, 0)))

    def test_footer_size_above_24_bits(self):
        with self.assertRaises(MalformedHeader):
            decompress_overlay(io.BytesIO(pack("<LL", 8 | (8 << 24), 0xffffffff)))


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def write_input(self, name: str, data: bytes) -> str:
        path = os.path.join(self.tmp, name)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def read(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def test_single_file(self):
        path = self.write_input("a.lz", LZSS11_ABCD)
        self.assertEqual(main([path]), 0)
        self.assertEqual(self.read(path + ".dec"), b"abcd" * 5)

    def test_batch_into_destination(self):
        paths = [self.write_input("a.lz", LZSS10_ABCD), self.write_input("b.lz", LZSS11_ABCD)]
        destination = os.path.join(self.tmp, "out")
        self.assertEqual(main(["-o", destination, "--suffix", ".bin"] + paths), 0)
        self.assertEqual(self.read(os.path.join(destination, "a.lz.bin")), b"abcd" * 5)
        self.assertEqual(self.read(os.path.join(destination, "b.lz.bin")), b"abcd" * 5)

    def test_overlay(self):
        path = self.write_input("overlay_0000.bin", make_overlay())
        self.assertEqual(main(["--overlay", path]), 0)
        self.assertEqual(self.read(path + ".dec"), b"HEAD" + b"zyx" * 7)

    def test_failure_continues_batch(self):
        bad = self.write_input("bad.lz", b"\x12\x00\x00\x00")
        good = self.write_input("good.lz", LZSS10_ABCD)
        self.assertEqual(main([bad, good]), 1)
        self.assertFalse(os.path.exists(bad + ".dec"))
        self.assertEqual(self.read(good + ".dec"), b"abcd" * 5)

    def test_existing_output_skipped(self):
        path = self.write_input("a.lz", LZSS10_ABCD)
        self.write_input("a.lz.dec", b"old")
        self.assertEqual(main([path]), 0)
        self.assertEqual(self.read(path + ".dec"), b"old")
        self.assertEqual(main(["--force", path]), 0)
        self.assertEqual(self.read(path + ".dec"), b"abcd" * 5)

    def test_failed_write_leaves_no_output(self):
        class FullDiskWriter:
            def __init__(self, f):
                self._f = f

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self._f.close()

            def write(self, data):
                self._f.write(data[:3])
                self._f.flush()
                raise OSError(errno.ENOSPC, "No space left on device")

        real_open = builtins.open

        def full_disk_open(file, mode="r", *args, **kwargs):
            f = real_open(file, mode, *args, **kwargs)
            if "w" in mode:
                return FullDiskWriter(f)
            return f

        path = self.write_input("a.lz", LZSS10_ABCD)
        with mock.patch("nitro_lzss.cli.open", create=True, side_effect=full_disk_open):
            self.assertEqual(main([path]), 1)
        self.assertFalse(os.path.exists(path + ".dec"))
        self.assertEqual(main([path]), 0)
        self.assertEqual(self.read(path + ".dec"), b"abcd" * 5)


if __name__ == '__main__':
    unittest.main()
