"""
Упаковка логической последовательности битов в байты и обратно.

Перед полезными битами записывается заголовок выравнивания: k-1 нулей и
единица-маркер, где k = 8 - (длина % 8). Старший бит байта идёт первым.
"""

from typing import List


class InvalidBitCharacterError(ValueError):
    pass


class BitStream:
    def __init__(self):
        self.bits: List[int] = []

    def write_bit(self, bit: int):
        self.bits.append(1 if bit else 0)

    def write_bits(self, code: str):
        for ch in code:
            if ch == '0':
                self.write_bit(0)
            elif ch == '1':
                self.write_bit(1)
            else:
                raise InvalidBitCharacterError(
                    f"Invalid character {ch!r} in bit string"
                )

    def to_bitstring(self) -> str:
        return ''.join('1' if bit else '0' for bit in self.bits)

    def to_bytes(self) -> bytes:
        padding = 8 - len(self.bits) % 8
        padded = [0] * (padding - 1) + [1] + self.bits

        output = bytearray()
        for i in range(0, len(padded), 8):
            byte = 0
            for j in range(8):
                byte = (byte << 1) | padded[i + j]
            output.append(byte)

        return bytes(output)

    @staticmethod
    def from_bytes(data: bytes) -> 'BitStream':
        stream = BitStream()

        bits = []
        for byte in data:
            for j in range(7, -1, -1):
                bits.append((byte >> j) & 1)

        start = 8
        for i in range(min(8, len(bits))):
            if bits[i] == 1:
                start = i + 1
                break

        stream.bits = bits[start:]
        return stream


def write_bit_string(bit_string: str) -> bytes:
    stream = BitStream()
    stream.write_bits(bit_string)
    return stream.to_bytes()


def read_bit_string(data: bytes) -> str:
    return BitStream.from_bytes(data).to_bitstring()
