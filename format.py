"""
Определяет структуру закодированного файла и методы чтения/записи.
Вместе с данными хранится отсортированный список частот, по которому
декодер заново строит то же самое дерево.
"""

import math
import struct
import io
import zlib
from typing import List
from dataclasses import dataclass, field

from frequency import ALPHABET_SIZE, FrequencyEntry


CONTAINER_MAGIC = b'HUF7'
CONTAINER_VERSION = 1
HEADER_SIZE = 8
ENTRY_SIZE = 9


@dataclass
class EncodedFile:
    frequencies: List[FrequencyEntry] = field(default_factory=list)
    original_size: int = 0
    crc32: int = 0
    payload: bytes = b''

    def serialize(self) -> bytes:
        output = io.BytesIO()

        output.write(CONTAINER_MAGIC)
        output.write(struct.pack('<B', CONTAINER_VERSION))
        output.write(struct.pack('<B', 0))
        output.write(struct.pack('<H', len(self.frequencies)))

        for entry in self.frequencies:
            output.write(struct.pack('<B', entry.symbol))
            output.write(struct.pack('<d', entry.probability))

        output.write(struct.pack('<Q', self.original_size))
        output.write(struct.pack('<I', self.crc32))
        output.write(struct.pack('<Q', len(self.payload)))
        output.write(self.payload)

        return output.getvalue()

    @staticmethod
    def deserialize(data: bytes) -> 'EncodedFile':
        if len(data) < HEADER_SIZE:
            raise ValueError("Invalid header: file too small")

        if data[:4] != CONTAINER_MAGIC:
            raise ValueError("Invalid magic")

        version = data[4]
        if version != CONTAINER_VERSION:
            raise ValueError(f"Unsupported version: {version}")

        count = struct.unpack_from('<H', data, 6)[0]
        pos = HEADER_SIZE

        if pos + count * ENTRY_SIZE > len(data):
            raise ValueError("Corrupted file: cannot read frequency table")

        frequencies = []
        for _ in range(count):
            symbol = data[pos]
            probability = struct.unpack_from('<d', data, pos + 1)[0]
            pos += ENTRY_SIZE

            if symbol >= ALPHABET_SIZE:
                raise ValueError(f"Corrupted file: symbol {symbol} out of range")

            if not math.isfinite(probability) or probability < 0:
                raise ValueError(
                    f"Corrupted file: invalid probability {probability} for symbol {symbol}"
                )

            frequencies.append(FrequencyEntry(symbol, probability))

        _check_frequency_table(frequencies)

        if pos + 20 > len(data):
            raise ValueError("Corrupted file: cannot read metadata")

        original_size = struct.unpack_from('<Q', data, pos)[0]
        pos += 8
        crc32 = struct.unpack_from('<I', data, pos)[0]
        pos += 4
        payload_size = struct.unpack_from('<Q', data, pos)[0]
        pos += 8

        if pos + payload_size > len(data):
            raise ValueError("Corrupted file: cannot read payload")

        payload = data[pos:pos + payload_size]

        return EncodedFile(
            frequencies=frequencies,
            original_size=original_size,
            crc32=crc32,
            payload=payload
        )


def _check_frequency_table(frequencies: List[FrequencyEntry]):
    symbols = [entry.symbol for entry in frequencies]
    if len(set(symbols)) != len(symbols):
        raise ValueError("Corrupted file: duplicate symbol in frequency table")

    keys = [(entry.probability, entry.symbol) for entry in frequencies]
    if keys != sorted(keys):
        raise ValueError("Corrupted file: frequency table is not sorted")


def calculate_crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xffffffff


def verify_integrity(encoded: EncodedFile, decoded_data: bytes) -> bool:
    if len(decoded_data) != encoded.original_size:
        return False

    return calculate_crc32(decoded_data) == encoded.crc32
