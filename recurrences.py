"""
Producers to feed a MemoizedSequence: recurrences whose n-th value needs all
the earlier ones, plus iterator wrappers for observing and sizing producers.
"""

from typing import Any, Iterable, Iterator, List

from memoseq import remaining_count


def factorials() -> Iterator[int]:
    """0!, 1!, 2!, ... forever."""
    n, acc = 0, 1
    while True:
        yield acc
        n += 1
        acc *= n


def fibonacci() -> Iterator[int]:
    """0, 1, 1, 2, 3, 5, ... forever."""
    a, b = 0, 1
    while True:
        yield a
        a, b = b, a + b


def triangular_numbers() -> Iterator[int]:
    n, total = 0, 0
    while True:
        yield total
        n += 1
        total += n


class CountingIterator:
    """Iterator wrapper that records every value it hands out.

    ``calls`` counts successful ``next()`` calls and ``log`` holds the values
    in order. The wrapped iterator's exact length, if any, is passed through.
    """

    def __init__(self, iterable: Iterable[Any]):
        self.iterator = iter(iterable)
        self.calls = 0
        self.log: List[Any] = []

    def __iter__(self):
        return self

    def __next__(self):
        value = next(self.iterator)
        self.calls += 1
        self.log.append(value)
        return value

    def __len__(self):
        remaining = remaining_count(self.iterator)
        if remaining is None:
            raise TypeError(f"{type(self.iterator).__name__} does not report an exact length")
        return remaining

    def __length_hint__(self):
        remaining = remaining_count(self.iterator)
        if remaining is None:
            return NotImplemented
        return remaining


class SizedIterator:
    """Attach a known length to an iterator that can't report one itself.

    Handy for generators: ``SizedIterator((x * x for x in data), len(data))``.
    The count goes down by one per value; running out early zeroes it.
    """

    def __init__(self, iterable: Iterable[Any], length: int):
        if length < 0:
            raise ValueError(f"Length must be >= 0, got {length}")
        self.iterator = iter(iterable)
        self.remaining = length

    def __iter__(self):
        return self

    def __next__(self):
        try:
            value = next(self.iterator)
        except StopIteration:
            self.remaining = 0
            raise
        self.remaining = max(self.remaining - 1, 0)
        return value

    def __len__(self):
        return self.remaining
