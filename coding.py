"""
Сеанс кодирования одного файла: построение списка частот, дерева и таблицы
кодов, запись закодированного файла и обратное декодирование.
"""

import os
from typing import List, Optional

from bitstream import BitStream
from frequency import ALPHABET_SIZE, FrequencyEntry, build_sorted_list
from format import EncodedFile, calculate_crc32, verify_integrity
from huffman import CodingStats, HuffmanDecoder, HuffmanNode, HuffmanTree


class HuffmanCoding:
    def __init__(self, file_name: str):
        self.file_name = file_name
        self._sorted_char_freq_list: Optional[List[FrequencyEntry]] = None
        self._tree: Optional[HuffmanTree] = None
        self._encodings: Optional[List[Optional[str]]] = None
        self._data: Optional[bytes] = None

    @property
    def sorted_char_freq_list(self) -> Optional[List[FrequencyEntry]]:
        return self._sorted_char_freq_list

    @property
    def huffman_root(self) -> Optional[HuffmanNode]:
        return self._tree.root if self._tree else None

    @property
    def encodings(self) -> Optional[List[Optional[str]]]:
        return self._encodings

    def _read_input(self) -> bytes:
        # файл читается один раз за сеанс
        if self._data is None:
            with open(self.file_name, 'rb') as f:
                self._data = f.read()
        return self._data

    def make_sorted_list(self):
        self._sorted_char_freq_list = build_sorted_list(self._read_input())

    def make_tree(self):
        if self._sorted_char_freq_list is None:
            self.make_sorted_list()

        self._tree = None
        if self._sorted_char_freq_list:
            tree = HuffmanTree()
            tree.build(self._sorted_char_freq_list)
            self._tree = tree

    def make_encodings(self):
        if self._tree is None:
            self.make_tree()

        encodings: List[Optional[str]] = [None] * ALPHABET_SIZE
        if self._tree is not None:
            for symbol, code in self._tree.codes.items():
                encodings[symbol] = code

        self._encodings = encodings

    def encode(self, encoded_file: str) -> EncodedFile:
        if self._encodings is None:
            self.make_encodings()

        data = self._read_input()
        bitstream = BitStream()

        for symbol in data:
            code = self._encodings[symbol] if symbol < ALPHABET_SIZE else None
            if code is None:
                raise ValueError(f"No code for symbol {symbol} in {self.file_name}")
            bitstream.write_bits(code)

        encoded = EncodedFile(
            frequencies=list(self._sorted_char_freq_list),
            original_size=len(data),
            crc32=calculate_crc32(data),
            payload=bitstream.to_bytes()
        )

        with open(encoded_file, 'wb') as f:
            f.write(encoded.serialize())

        return encoded

    @staticmethod
    def decode(encoded_file: str, decoded_file: str) -> bool:
        with open(encoded_file, 'rb') as f:
            encoded = EncodedFile.deserialize(f.read())

        decoded = HuffmanDecoder.decode(encoded.frequencies, encoded.payload)

        if not verify_integrity(encoded, decoded):
            print(f"Warning: CRC32 mismatch for {encoded_file}")
            return False

        output_dir = os.path.dirname(decoded_file)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        with open(decoded_file, 'wb') as f:
            f.write(decoded)

        return True

    def stats(self) -> CodingStats:
        if self._encodings is None:
            self.make_encodings()

        data = self._read_input()
        codes = self._tree.codes if self._tree else {}

        # заголовок выравнивания всегда добавляет от 1 до 8 бит
        payload_bits = sum(len(codes[symbol]) for symbol in data)
        encoded_size = payload_bits // 8 + 1

        return CodingStats(self._sorted_char_freq_list, codes,
                           len(data), encoded_size)

    def show_codes(self):
        if self._encodings is None:
            self.make_encodings()

        print(f"{'Symbol':<10} {'Probability':>12} {'Code':>24}")
        print("-" * 48)

        for entry in sorted(self._sorted_char_freq_list, key=lambda e: e.symbol):
            code = self._encodings[entry.symbol]
            print(f"{_symbol_label(entry.symbol):<10} {entry.probability:>12.6f} {code:>24}")

        print("-" * 48)
        print(f"{len(self._sorted_char_freq_list)} symbols")


def _symbol_label(symbol: int) -> str:
    ch = chr(symbol)
    if ch.isprintable() and not ch.isspace():
        return f"'{ch}'"
    return f"0x{symbol:02x}"


def encode_file(input_path: str, output_path: str) -> Optional[EncodedFile]:
    if not os.path.isfile(input_path):
        print(f"Error: {input_path} not found")
        return None

    print(f"Encoding {input_path}...", end=" ")
    session = HuffmanCoding(input_path)
    encoded = session.encode(output_path)

    encoded_size = os.path.getsize(output_path)
    ratio = (encoded_size / encoded.original_size * 100) if encoded.original_size > 0 else 0
    print(f"OK ({ratio:.1f}%)")
    print(f"Total: {encoded.original_size} -> {encoded_size} bytes")

    return encoded


def decode_file(input_path: str, output_path: str) -> bool:
    if not os.path.isfile(input_path):
        print(f"Error: {input_path} not found")
        return False

    print(f"Decoding {input_path}...", end=" ")
    success = HuffmanCoding.decode(input_path, output_path)
    print("OK" if success else "FAILED")

    return success
