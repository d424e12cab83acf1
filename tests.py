import unittest
import tempfile
import os
import io
import sys
import random
from contextlib import redirect_stdout, redirect_stderr
from unittest.mock import patch

from frequency import FrequencyEntry, build_sorted_list, count_symbols
from bitstream import BitStream, InvalidBitCharacterError, write_bit_string, read_bit_string
from huffman import (HuffmanTree, HuffmanEncoder, HuffmanDecoder, CodingStats,
                     compress_with_huffman, decompress_with_huffman)
from format import EncodedFile, calculate_crc32, verify_integrity
from coding import HuffmanCoding, encode_file, decode_file
from main import main


SAMPLE = b"aaaaaabccd"
PANGRAM = b"The quick brown fox jumps over the lazy dog"


def tree_shape(node):
    if node.is_leaf:
        return (node.symbol, node.probability)
    return (node.probability, tree_shape(node.left), tree_shape(node.right))


class TestFrequencyModel(unittest.TestCase):
    def test_sorted_by_probability_then_symbol(self):
        entries = build_sorted_list(SAMPLE)
        self.assertEqual(entries, [
            FrequencyEntry(ord('b'), 0.1),
            FrequencyEntry(ord('d'), 0.1),
            FrequencyEntry(ord('c'), 0.2),
            FrequencyEntry(ord('a'), 0.6),
        ])

    def test_empty_input(self):
        self.assertEqual(build_sorted_list(b""), [])

    def test_single_symbol_adds_dummy(self):
        entries = build_sorted_list(b"aaaa")
        self.assertEqual(entries, [
            FrequencyEntry(ord('b'), 0.0),
            FrequencyEntry(ord('a'), 1.0),
        ])

    def test_dummy_wraps_at_end_of_alphabet(self):
        entries = build_sorted_list(bytes([127]) * 3)
        self.assertEqual(entries, [
            FrequencyEntry(0, 0.0),
            FrequencyEntry(127, 1.0),
        ])

    def test_probabilities_sum_to_one(self):
        entries = build_sorted_list(PANGRAM)
        self.assertAlmostEqual(sum(e.probability for e in entries), 1.0)
        self.assertTrue(all(e.probability > 0 for e in entries))

    def test_symbol_outside_alphabet(self):
        with self.assertRaises(ValueError):
            build_sorted_list(b"abc\x80")

    def test_count_symbols(self):
        counts = count_symbols(SAMPLE)
        self.assertEqual(len(counts), 128)
        self.assertEqual(counts[ord('a')], 6)
        self.assertEqual(counts[ord('c')], 2)
        self.assertEqual(sum(counts), 10)


class TestHuffmanTree(unittest.TestCase):
    def test_sample_codes(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(SAMPLE))
        self.assertEqual(tree.codes, {
            ord('a'): '1',
            ord('c'): '00',
            ord('b'): '010',
            ord('d'): '011',
        })

    def test_sample_shape(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(SAMPLE))
        root = tree.root

        self.assertFalse(root.is_leaf)
        self.assertAlmostEqual(root.probability, 1.0)
        self.assertEqual(root.right.symbol, ord('a'))
        self.assertAlmostEqual(root.left.probability, 0.4)
        # c wins the 0.2 tie against the merged (b, d) node
        self.assertEqual(root.left.left.symbol, ord('c'))
        self.assertEqual(root.left.right.left.symbol, ord('b'))
        self.assertEqual(root.left.right.right.symbol, ord('d'))

    def test_equal_probabilities_prefer_source(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(b"abcd"))
        self.assertEqual(tree.codes, {
            ord('a'): '00',
            ord('b'): '01',
            ord('c'): '10',
            ord('d'): '11',
        })

    def test_deterministic(self):
        entries = build_sorted_list(PANGRAM)
        first = HuffmanTree()
        first.build(entries)
        second = HuffmanTree()
        second.build(list(entries))

        self.assertEqual(tree_shape(first.root), tree_shape(second.root))
        self.assertEqual(first.codes, second.codes)

    def test_codes_prefix_free(self):
        random.seed(7)
        inputs = [
            PANGRAM,
            SAMPLE,
            bytes(range(128)),
            bytes(random.randint(0, 127) for _ in range(3000)),
            bytes(random.choice(b"aaaaaaaabbbbcd\n") for _ in range(500)),
        ]

        for data in inputs:
            tree = HuffmanTree()
            tree.build(build_sorted_list(data))
            codes = list(tree.codes.values())

            self.assertEqual(len(codes), len(set(data)))
            for i, code in enumerate(codes):
                self.assertGreater(len(code), 0)
                for j, other in enumerate(codes):
                    if i != j:
                        self.assertFalse(other.startswith(code))

    def test_single_symbol_gets_two_codes(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(b"aaaa"))
        self.assertEqual(tree.codes, {ord('b'): '0', ord('a'): '1'})

    def test_too_few_entries(self):
        tree = HuffmanTree()
        with self.assertRaises(ValueError):
            tree.build([])
        with self.assertRaises(ValueError):
            tree.build([FrequencyEntry(ord('a'), 1.0)])

    def test_decode_bits(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(SAMPLE))
        self.assertEqual(tree.decode_bits([0, 1, 1, 1, 0, 0, 0, 1, 0]), b"dacb")

    def test_decode_trailing_bits(self):
        tree = HuffmanTree()
        tree.build(build_sorted_list(SAMPLE))
        with self.assertRaises(ValueError):
            tree.decode_bits([1, 0, 1])


class TestBitStream(unittest.TestCase):
    def test_aligned_payload_gets_full_padding_byte(self):
        self.assertEqual(write_bit_string("01010101"), b'\x01\x55')

    def test_empty_payload(self):
        self.assertEqual(write_bit_string(""), b'\x01')

    def test_partial_padding(self):
        self.assertEqual(write_bit_string("101"), b'\x0d')

    def test_invalid_character(self):
        with self.assertRaises(InvalidBitCharacterError):
            write_bit_string("0120")
        with self.assertRaises(ValueError):
            write_bit_string("01 1")

    def test_read_strips_marker(self):
        self.assertEqual(read_bit_string(b'\x0d'), "101")
        self.assertEqual(read_bit_string(b'\x01\x55'), "01010101")
        self.assertEqual(read_bit_string(b'\x01'), "")

    def test_read_without_marker_strips_first_byte(self):
        self.assertEqual(read_bit_string(b'\x00\xff'), "11111111")

    def test_read_empty_buffer(self):
        self.assertEqual(read_bit_string(b''), "")

    def test_write_bits_accumulates(self):
        stream = BitStream()
        stream.write_bits("11")
        stream.write_bit(0)
        stream.write_bits("1")
        self.assertEqual(stream.bits, [1, 1, 0, 1])
        self.assertEqual(BitStream.from_bytes(stream.to_bytes()).bits, [1, 1, 0, 1])


class TestHuffmanEncoding(unittest.TestCase):
    def test_sample_bytes(self):
        frequencies, encoded = HuffmanEncoder.encode(SAMPLE)
        self.assertEqual(encoded, b'\x01\xfd\x03')
        self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), SAMPLE)

    def test_empty(self):
        frequencies, encoded = HuffmanEncoder.encode(b"")
        self.assertEqual(frequencies, [])
        self.assertEqual(encoded, b'\x01')
        self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), b"")

    def test_single_char(self):
        data = b"aaaa"
        frequencies, encoded = HuffmanEncoder.encode(data)
        self.assertEqual(len(frequencies), 2)
        self.assertEqual(encoded, b'\x1f')
        self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), data)

    def test_roundtrip_text(self):
        for data in (PANGRAM, b"Lorem ipsum dolor sit amet\n" * 200, b"ab", b"\x00\x7f"):
            frequencies, encoded = HuffmanEncoder.encode(data)
            self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), data)

    def test_roundtrip_random_ascii(self):
        random.seed(42)
        data = bytes(random.randint(0, 127) for _ in range(5000))
        frequencies, encoded = HuffmanEncoder.encode(data)
        self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), data)

    def test_roundtrip_all_symbols(self):
        data = bytes(range(128))
        frequencies, encoded = HuffmanEncoder.encode(data)
        self.assertEqual(HuffmanDecoder.decode(frequencies, encoded), data)

    def test_non_ascii_rejected(self):
        with self.assertRaises(ValueError):
            HuffmanEncoder.encode("привет".encode('utf-8'))

    def test_trailing_partial_code(self):
        frequencies = build_sorted_list(SAMPLE)
        with self.assertRaises(ValueError):
            HuffmanDecoder.decode(frequencies, write_bit_string("0"))

    def test_payload_without_frequencies(self):
        with self.assertRaises(ValueError):
            HuffmanDecoder.decode([], write_bit_string("1"))

    def test_compresses_skewed_text(self):
        data = b"a" * 900 + b"b" * 90 + b"c" * 10
        _, encoded = HuffmanEncoder.encode(data)
        self.assertLess(len(encoded), len(data) // 4)


class TestEncodedFileFormat(unittest.TestCase):
    def test_serialize_and_read(self):
        frequencies, payload = HuffmanEncoder.encode(SAMPLE)
        encoded = EncodedFile(
            frequencies=frequencies,
            original_size=len(SAMPLE),
            crc32=calculate_crc32(SAMPLE),
            payload=payload
        )

        restored = EncodedFile.deserialize(encoded.serialize())
        self.assertEqual(restored.frequencies, frequencies)
        self.assertEqual(restored.original_size, 10)
        self.assertEqual(restored.crc32, calculate_crc32(SAMPLE))
        self.assertEqual(restored.payload, b'\x01\xfd\x03')

    def test_invalid_magic(self):
        data = bytearray(compress_with_huffman(SAMPLE))
        data[0:4] = b'ABCD'
        with self.assertRaises(ValueError):
            EncodedFile.deserialize(bytes(data))

    def test_unsupported_version(self):
        data = bytearray(compress_with_huffman(SAMPLE))
        data[4] = 99
        with self.assertRaises(ValueError):
            EncodedFile.deserialize(bytes(data))

    def test_truncated(self):
        data = compress_with_huffman(PANGRAM)
        for size in (3, 12, len(data) - 1):
            with self.assertRaises(ValueError):
                EncodedFile.deserialize(data[:size])

    def test_compression_wrapper(self):
        for data in (PANGRAM, b"", b"zzzz", SAMPLE):
            self.assertEqual(decompress_with_huffman(compress_with_huffman(data)), data)

    def test_crc_mismatch(self):
        encoded = EncodedFile.deserialize(compress_with_huffman(PANGRAM))
        encoded.crc32 ^= 0xFFFF
        with self.assertRaises(ValueError):
            decompress_with_huffman(encoded.serialize())

    def _container(self, frequencies):
        return EncodedFile(frequencies=frequencies, original_size=1,
                           crc32=0, payload=b'\x03').serialize()

    def test_invalid_probability(self):
        for bad in (float('nan'), float('inf'), -0.5):
            data = self._container([FrequencyEntry(97, bad), FrequencyEntry(98, 0.5)])
            with self.assertRaises(ValueError):
                EncodedFile.deserialize(data)
            with self.assertRaises(ValueError):
                decompress_with_huffman(data)

    def test_duplicate_symbol(self):
        data = self._container([FrequencyEntry(97, 0.5), FrequencyEntry(97, 0.5)])
        with self.assertRaisesRegex(ValueError, "Corrupted file"):
            EncodedFile.deserialize(data)

    def test_unsorted_frequency_table(self):
        data = self._container([FrequencyEntry(97, 0.6), FrequencyEntry(98, 0.4)])
        with self.assertRaisesRegex(ValueError, "Corrupted file"):
            EncodedFile.deserialize(data)

        data = self._container([FrequencyEntry(98, 0.5), FrequencyEntry(97, 0.5)])
        with self.assertRaisesRegex(ValueError, "Corrupted file"):
            EncodedFile.deserialize(data)

    def test_verify_integrity(self):
        encoded = EncodedFile(original_size=len(SAMPLE), crc32=calculate_crc32(SAMPLE))
        self.assertTrue(verify_integrity(encoded, SAMPLE))
        self.assertFalse(verify_integrity(encoded, b"aaaaaabccc"))
        self.assertFalse(verify_integrity(encoded, SAMPLE + b"a"))


class TestCodingStats(unittest.TestCase):
    def test_sample_stats(self):
        frequencies = build_sorted_list(SAMPLE)
        tree = HuffmanTree()
        tree.build(frequencies)

        stats = CodingStats(frequencies, tree.codes, 10, 3)
        self.assertEqual(stats.symbol_count, 4)
        self.assertAlmostEqual(stats.average_code_length, 1.6)
        self.assertLessEqual(stats.entropy, stats.average_code_length)
        self.assertAlmostEqual(stats.compression_ratio, 30.0)

    def test_degenerate_stats(self):
        frequencies = build_sorted_list(b"aaaa")
        tree = HuffmanTree()
        tree.build(frequencies)

        stats = CodingStats(frequencies, tree.codes, 4, 1)
        self.assertEqual(stats.symbol_count, 1)
        self.assertAlmostEqual(stats.entropy, 0.0)
        self.assertAlmostEqual(stats.average_code_length, 1.0)


class TestHuffmanCoding(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name: str, data: bytes) -> str:
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_stepwise_session(self):
        path = self._write("sample.txt", SAMPLE)
        session = HuffmanCoding(path)

        session.make_sorted_list()
        self.assertEqual(len(session.sorted_char_freq_list), 4)

        session.make_tree()
        self.assertAlmostEqual(session.huffman_root.probability, 1.0)

        session.make_encodings()
        self.assertEqual(len(session.encodings), 128)
        self.assertEqual(session.encodings[ord('a')], '1')
        self.assertEqual(session.encodings[ord('d')], '011')
        self.assertIsNone(session.encodings[ord('e')])

    def test_encode_decode_file(self):
        data = b"Hello World!\n" * 100
        path = self._write("hello.txt", data)
        encoded_path = os.path.join(self.temp_dir, "hello.huf")
        decoded_path = os.path.join(self.temp_dir, "out", "hello.txt")

        session = HuffmanCoding(path)
        encoded = session.encode(encoded_path)
        self.assertEqual(encoded.original_size, len(data))
        self.assertLess(os.path.getsize(encoded_path), len(data))

        self.assertTrue(session.decode(encoded_path, decoded_path))
        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_empty_file(self):
        path = self._write("empty.txt", b"")
        encoded_path = os.path.join(self.temp_dir, "empty.huf")
        decoded_path = os.path.join(self.temp_dir, "empty.out")

        session = HuffmanCoding(path)
        encoded = session.encode(encoded_path)
        self.assertEqual(encoded.payload, b'\x01')
        self.assertIsNone(session.huffman_root)

        self.assertTrue(session.decode(encoded_path, decoded_path))
        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), b"")

    def test_decode_detects_crc_mismatch(self):
        path = self._write("sample.txt", SAMPLE)
        encoded_path = os.path.join(self.temp_dir, "sample.huf")
        decoded_path = os.path.join(self.temp_dir, "sample.out")

        session = HuffmanCoding(path)
        encoded = session.encode(encoded_path)
        encoded.crc32 ^= 1
        with open(encoded_path, 'wb') as f:
            f.write(encoded.serialize())

        with redirect_stdout(io.StringIO()):
            self.assertFalse(session.decode(encoded_path, decoded_path))
        self.assertFalse(os.path.exists(decoded_path))

    def test_non_ascii_file(self):
        path = self._write("binary.bin", bytes([0x41, 0xC8]))
        with self.assertRaises(ValueError):
            HuffmanCoding(path).make_sorted_list()

    def test_missing_file(self):
        with self.assertRaises(OSError):
            HuffmanCoding(os.path.join(self.temp_dir, "nope.txt")).make_sorted_list()

    def test_file_helpers(self):
        data = b"Content of file 1\n" * 50
        path = self._write("file1.txt", data)
        encoded_path = os.path.join(self.temp_dir, "file1.huf")
        decoded_path = os.path.join(self.temp_dir, "file1.out")

        with redirect_stdout(io.StringIO()):
            self.assertIsNotNone(encode_file(path, encoded_path))
            self.assertTrue(decode_file(encoded_path, decoded_path))
            self.assertIsNone(encode_file(os.path.join(self.temp_dir, "nope"), encoded_path))
            self.assertFalse(decode_file(os.path.join(self.temp_dir, "nope"), decoded_path))

        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_input_read_once(self):
        path = self._write("sample.txt", SAMPLE)
        encoded_path = os.path.join(self.temp_dir, "sample.huf")
        decoded_path = os.path.join(self.temp_dir, "sample.out")

        session = HuffmanCoding(path)
        session.make_sorted_list()
        os.remove(path)

        encoded = session.encode(encoded_path)
        self.assertEqual(encoded.original_size, len(SAMPLE))
        self.assertEqual(session.stats().original_size, len(SAMPLE))

        self.assertTrue(HuffmanCoding.decode(encoded_path, decoded_path))
        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), SAMPLE)

    def test_decode_without_source_file(self):
        path = self._write("sample.txt", SAMPLE)
        encoded_path = os.path.join(self.temp_dir, "sample.huf")
        decoded_path = os.path.join(self.temp_dir, "sample.out")

        HuffmanCoding(path).encode(encoded_path)
        os.remove(path)

        self.assertTrue(HuffmanCoding.decode(encoded_path, decoded_path))
        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), SAMPLE)

    def test_stats(self):
        path = self._write("sample.txt", SAMPLE)
        stats = HuffmanCoding(path).stats()
        self.assertEqual(stats.original_size, 10)
        self.assertEqual(stats.encoded_size, 3)
        self.assertAlmostEqual(stats.average_code_length, 1.6)

    def test_show_codes(self):
        path = self._write("sample.txt", SAMPLE)
        output = io.StringIO()
        with redirect_stdout(output):
            HuffmanCoding(path).show_codes()

        text = output.getvalue()
        self.assertIn("'a'", text)
        self.assertIn("011", text)
        self.assertIn("4 symbols", text)


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name: str, data: bytes) -> str:
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def _run(self, *args):
        stdout = io.StringIO()
        stderr = io.StringIO()
        with patch.object(sys, 'argv', ['main.py'] + list(args)):
            with redirect_stdout(stdout), redirect_stderr(stderr):
                main()
        return stdout.getvalue(), stderr.getvalue()

    def test_no_command_prints_help(self):
        stdout, _ = self._run()
        self.assertIn("usage:", stdout)

    def test_encode_and_decode(self):
        path = self._write("input.txt", PANGRAM)
        encoded_path = os.path.join(self.temp_dir, "input.huf")
        decoded_path = os.path.join(self.temp_dir, "decoded.txt")

        self._run('encode', path, '-o', encoded_path)
        self._run('decode', encoded_path, '-o', decoded_path)

        with open(decoded_path, 'rb') as f:
            self.assertEqual(f.read(), PANGRAM)

    def test_non_ascii_input(self):
        path = self._write("binary.bin", bytes([0x41, 0xC8]))
        encoded_path = os.path.join(self.temp_dir, "binary.huf")

        with self.assertRaises(SystemExit) as cm:
            self._run('encode', path, '-o', encoded_path)
        self.assertEqual(cm.exception.code, 1)

    def test_bad_magic_reports_error(self):
        path = self._write("bad.huf", b'ABCD' + bytes(30))
        decoded_path = os.path.join(self.temp_dir, "bad.out")

        stderr = io.StringIO()
        with patch.object(sys, 'argv', ['main.py', 'decode', path, '-o', decoded_path]):
            with redirect_stdout(io.StringIO()), redirect_stderr(stderr):
                with self.assertRaises(SystemExit) as cm:
                    main()

        self.assertEqual(cm.exception.code, 1)
        self.assertTrue(stderr.getvalue().startswith("Error: "))
        self.assertIn("magic", stderr.getvalue())

    def test_missing_input(self):
        missing = os.path.join(self.temp_dir, "nope.txt")
        with self.assertRaises(SystemExit) as cm:
            self._run('encode', missing, '-o', os.path.join(self.temp_dir, "out.huf"))
        self.assertEqual(cm.exception.code, 1)

    def test_codes_and_stats(self):
        path = self._write("sample.txt", SAMPLE)

        stdout, _ = self._run('codes', path)
        self.assertIn("'a'", stdout)

        stdout, _ = self._run('stats', path)
        self.assertIn("Avg code length:", stdout)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestFrequencyModel))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanEncoding))
    suite.addTests(loader.loadTestsFromTestCase(TestEncodedFileFormat))
    suite.addTests(loader.loadTestsFromTestCase(TestCodingStats))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanCoding))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
