"""
Частотная модель: подсчитывает вхождения 7-битных символов и строит
список вероятностей, отсортированный по возрастанию.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional


ALPHABET_SIZE = 128


@dataclass(frozen=True)
class FrequencyEntry:
    symbol: Optional[int]
    probability: float


def count_symbols(data: Iterable[int]) -> List[int]:
    counts = [0] * ALPHABET_SIZE

    for pos, symbol in enumerate(data):
        if not 0 <= symbol < ALPHABET_SIZE:
            raise ValueError(
                f"Symbol {symbol} at position {pos} is outside the 7-bit alphabet"
            )
        counts[symbol] += 1

    return counts


def build_sorted_list(data: Iterable[int]) -> List[FrequencyEntry]:
    """
    Возвращает записи (символ, вероятность) по возрастанию вероятности,
    при равенстве по возрастанию кода символа.

    Если во входе встречается ровно один символ, добавляется фиктивный
    следующий символ с нулевой вероятностью, чтобы у дерева было два листа.
    """
    counts = count_symbols(data)
    total = sum(counts)

    if total == 0:
        return []

    entries: List[FrequencyEntry] = []

    for symbol, count in enumerate(counts):
        if count == 0:
            continue

        probability = count / total
        entries.append(FrequencyEntry(symbol, probability))

        if probability == 1.0:
            # символ 127 заворачивается в 0
            dummy = (symbol + 1) % ALPHABET_SIZE
            entries.append(FrequencyEntry(dummy, 0.0))

    entries.sort(key=lambda entry: (entry.probability, entry.symbol))
    return entries
