"""
Реализует кодирование Хаффмана для 7-битного алфавита.

Дерево строится слиянием двух очередей (исходной и целевой) по заранее
отсортированному списку частот. Порядок слияния детерминирован, поэтому
декодер, получив тот же список, строит то же самое дерево.
"""

import math
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from bitstream import BitStream
from frequency import FrequencyEntry, build_sorted_list
from format import EncodedFile, calculate_crc32, verify_integrity


class HuffmanNode:
    def __init__(self, symbol: Optional[int] = None, probability: float = 0.0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.symbol = symbol
        self.probability = probability
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __repr__(self):
        if self.is_leaf:
            return f"LEAF({self.symbol}, {self.probability})"
        return f"NODE({self.probability})"


def _take_smallest(source: Deque[HuffmanNode],
                   target: Deque[HuffmanNode]) -> HuffmanNode:
    source_prob = source[0].probability if source else math.inf
    target_prob = target[0].probability if target else math.inf

    # при равенстве берём из исходной очереди
    if source_prob <= target_prob:
        return source.popleft()
    return target.popleft()


class HuffmanTree:
    def __init__(self):
        self.root: Optional[HuffmanNode] = None
        self.codes: Dict[int, str] = {}

    def build(self, frequencies: List[FrequencyEntry]):
        if len(frequencies) < 2:
            raise ValueError(
                f"Cannot build a tree from {len(frequencies)} frequency entries, "
                f"at least 2 are required"
            )

        source: Deque[HuffmanNode] = deque(
            HuffmanNode(symbol=entry.symbol, probability=entry.probability)
            for entry in frequencies
        )
        target: Deque[HuffmanNode] = deque()

        while source or len(target) > 1:
            left = _take_smallest(source, target)
            right = _take_smallest(source, target)

            parent = HuffmanNode(probability=left.probability + right.probability,
                                 left=left, right=right)
            target.append(parent)

        self.root = target.popleft()
        self._generate_codes()

    def _generate_codes(self):
        self.codes.clear()

        stack: List[Tuple[HuffmanNode, str]] = [(self.root, '')]
        while stack:
            node, code = stack.pop()

            if node.is_leaf:
                self.codes[node.symbol] = code
                continue

            stack.append((node.right, code + '1'))
            stack.append((node.left, code + '0'))

    def decode_bits(self, bits: Iterable[int]) -> bytes:
        if self.root is None:
            raise ValueError("Tree is not built")

        output = bytearray()
        node = self.root

        for bit in bits:
            node = node.right if bit else node.left

            if node.is_leaf:
                output.append(node.symbol)
                node = self.root

        if node is not self.root:
            raise ValueError("Corrupted stream: trailing bits do not complete a code")

        return bytes(output)


class HuffmanEncoder:
    @staticmethod
    def encode(data: bytes) -> Tuple[List[FrequencyEntry], bytes]:
        frequencies = build_sorted_list(data)
        bitstream = BitStream()

        if not frequencies:
            return frequencies, bitstream.to_bytes()

        tree = HuffmanTree()
        tree.build(frequencies)

        for symbol in data:
            code = tree.codes.get(symbol)
            if code is None:
                raise ValueError(f"No code for symbol {symbol}")
            bitstream.write_bits(code)

        return frequencies, bitstream.to_bytes()


class HuffmanDecoder:
    @staticmethod
    def decode(frequencies: List[FrequencyEntry], encoded_data: bytes) -> bytes:
        bitstream = BitStream.from_bytes(encoded_data)

        if not frequencies:
            if bitstream.bits:
                raise ValueError("Corrupted stream: payload without frequency table")
            return b''

        tree = HuffmanTree()
        tree.build(frequencies)

        return tree.decode_bits(bitstream.bits)


def compress_with_huffman(data: bytes) -> bytes:
    frequencies, payload = HuffmanEncoder.encode(data)

    encoded = EncodedFile(
        frequencies=frequencies,
        original_size=len(data),
        crc32=calculate_crc32(data),
        payload=payload
    )
    return encoded.serialize()


def decompress_with_huffman(data: bytes) -> bytes:
    encoded = EncodedFile.deserialize(data)
    decoded = HuffmanDecoder.decode(encoded.frequencies, encoded.payload)

    if not verify_integrity(encoded, decoded):
        raise ValueError("Integrity check failed: size or CRC32 mismatch")

    return decoded


class CodingStats:
    def __init__(self, frequencies: List[FrequencyEntry], codes: Dict[int, str],
                 original_size: int, encoded_size: int):
        self.frequencies = frequencies
        self.codes = codes
        self.original_size = original_size
        self.encoded_size = encoded_size

        self.symbol_count = sum(1 for e in frequencies if e.probability > 0)

        self.average_code_length = sum(
            e.probability * len(codes[e.symbol]) for e in frequencies
        )

        self.entropy = -sum(
            e.probability * math.log2(e.probability)
            for e in frequencies if e.probability > 0
        )

        self.compression_ratio = (
            encoded_size / original_size * 100
            if original_size > 0 else 0
        )

    def print_stats(self):
        print(f"Huffman Coding Statistics:")
        print(f"  Original size:       {self.original_size} bytes")
        print(f"  Encoded size:        {self.encoded_size} bytes")
        print(f"  Distinct symbols:    {self.symbol_count}")
        print(f"  Avg code length:     {self.average_code_length:.3f} bits/symbol")
        print(f"  Entropy:             {self.entropy:.3f} bits/symbol")
        print(f"  Compression ratio:   {self.compression_ratio:.1f}%")
