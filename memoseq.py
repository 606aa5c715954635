"""
Memoized sequences: a lazy producer paired with a cache of everything it has
produced so far.

Asking for index ``n`` drives the producer forward (caching every value on the
way) until ``n`` has been produced. Asking again, or asking for any smaller
index, is answered straight from the cache.
"""

import logging
import operator
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

from models import SequenceStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()

# Iterators over these containers report an exact remaining count through
# __length_hint__.
_EXACT_SIZE_ITERATORS = tuple({
    type(iter(container)) for container in (
        [], (), range(0), "", b"", bytearray(), {}.keys(), {}.values(),
        {}.items(), set(), frozenset(), deque(),
    )
} | {
    type(reversed([])), type(reversed(range(0))),
    # Ranges past sys.maxsize get their own iterator types.
    type(iter(range(2 ** 64))), type(reversed(range(2 ** 64))),
})


class SequenceConsumedError(RuntimeError):
    """Raised when a sequence is used after ``consume()`` handed its state back."""


def remaining_count(iterator) -> Optional[int]:
    """Exactly how many values ``iterator`` has left, or None if it can't tell.

    An iterator can tell if it defines a working ``__len__``, or if it walks
    a built-in sized container.
    """
    if isinstance(iterator, MemoizedSequence):
        # As an iterator, a nested sequence only has its own producer's values left.
        if iterator._consumed:
            return None
        if iterator._exhausted:
            return 0
        return remaining_count(iterator._producer)
    if hasattr(type(iterator), "__len__"):
        try:
            return len(iterator)
        except TypeError:
            return None
    if isinstance(iterator, _EXACT_SIZE_ITERATORS):
        try:
            return operator.length_hint(iterator)
        except OverflowError:
            return None
    return None


def _check_index(index) -> int:
    try:
        index = operator.index(index)
    except TypeError:
        raise TypeError(f"Index must be an integer, not {type(index).__name__}") from None
    if index < 0:
        raise ValueError(f"Negative indexes are not supported: {index}")
    return index


# --------- range bounds ----------

class BoundKind(str, Enum):
    """How one end of an index range is delimited."""
    INCLUDED = "included"
    EXCLUDED = "excluded"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class Bound:
    """One end of an :class:`IndexRange`."""
    kind: BoundKind
    index: Optional[int] = None

    def __post_init__(self):
        if self.kind is BoundKind.UNBOUNDED:
            if self.index is not None:
                raise ValueError("An unbounded bound carries no index")
        else:
            object.__setattr__(self, "index", _check_index(self.index))

    @classmethod
    def included(cls, index: int) -> "Bound":
        return cls(BoundKind.INCLUDED, index)

    @classmethod
    def excluded(cls, index: int) -> "Bound":
        return cls(BoundKind.EXCLUDED, index)

    @classmethod
    def unbounded(cls) -> "Bound":
        return cls(BoundKind.UNBOUNDED)


@dataclass(frozen=True)
class IndexRange:
    """A range of indexes with independently included, excluded or open ends.

    Python slices can only express an included start and an excluded stop, so
    closed ranges (``a..=b``) need this type.
    """
    start: Bound
    end: Bound

    @classmethod
    def full(cls) -> "IndexRange":
        return cls(Bound.unbounded(), Bound.unbounded())

    @classmethod
    def closed(cls, start: int, end: int) -> "IndexRange":
        return cls(Bound.included(start), Bound.included(end))

    @classmethod
    def half_open(cls, start: int, end: int) -> "IndexRange":
        return cls(Bound.included(start), Bound.excluded(end))

    @classmethod
    def starting_at(cls, start: int) -> "IndexRange":
        return cls(Bound.included(start), Bound.unbounded())

    @classmethod
    def up_to(cls, end: int) -> "IndexRange":
        return cls(Bound.unbounded(), Bound.excluded(end))

    @classmethod
    def up_to_inclusive(cls, end: int) -> "IndexRange":
        return cls(Bound.unbounded(), Bound.included(end))

    @classmethod
    def from_slice(cls, s: slice) -> "IndexRange":
        """Convert ``s`` to a range; its step is ignored."""
        start = Bound.unbounded() if s.start is None else Bound.included(s.start)
        end = Bound.unbounded() if s.stop is None else Bound.excluded(s.stop)
        return cls(start, end)

    def first_index(self) -> int:
        """The inclusive start index."""
        if self.start.kind is BoundKind.INCLUDED:
            return self.start.index
        if self.start.kind is BoundKind.EXCLUDED:
            return self.start.index + 1
        return 0


# --------- read-only views ----------

class CacheView(Sequence):
    """
    A read-only window onto a sequence's cache.

    The window covers the positions that were available when the view was
    taken; values produced later do not show up in it.
    """
    __slots__ = ("_data", "_positions")

    def __init__(self, data: List[Any], positions: range):
        self._data = data
        self._positions = positions

    def __len__(self):
        return len(self._positions)

    def __getitem__(self, i):
        if isinstance(i, slice):
            return CacheView(self._data, self._positions[i])
        return self._data[self._positions[i]]

    def __iter__(self):
        data = self._data
        for position in self._positions:
            yield data[position]

    def __eq__(self, other):
        if not isinstance(other, Sequence) or isinstance(other, (str, bytes, bytearray)):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None

    def to_list(self) -> List[Any]:
        return [self._data[position] for position in self._positions]

    def __repr__(self):
        return f"CacheView({self.to_list()!r})"


# --------- the memoized sequence ----------

class MemoizedSequence(Generic[T]):
    """
    Wraps an iterator and keeps every value it returns, so that past values
    can be retrieved by index without recomputing them.

    The sequence owns the iterator: nothing else may advance it while the
    sequence is alive. Values are only ever appended to the cache, and once
    the iterator runs out it is never called again.

    >>> from recurrences import fibonacci
    >>> fib = MemoizedSequence(fibonacci())
    >>> fib.get(9)
    34
    >>> fib.get(3)  # computed on the way to 9, returned from the cache
    2
    """

    def __init__(self, producer: Iterable[T], capacity: int = 0):
        capacity = operator.index(capacity)
        if capacity < 0:
            raise ValueError(f"Capacity must be >= 0, got {capacity}")
        self._producer: Optional[Iterator[T]] = iter(producer)
        self._cache: Optional[List[T]] = []
        self._capacity = capacity
        self._exhausted = False
        self._consumed = False
        self._producer_calls = 0
        self._hits = 0
        self._misses = 0

    # --------- construction ----------
    @classmethod
    def with_capacity(cls, capacity: int, producer: Iterable[T]) -> "MemoizedSequence[T]":
        """Create an empty sequence sized for ``capacity`` values.

        The capacity is only a hint; the cache grows past it as needed.
        """
        return cls(producer, capacity=capacity)

    @classmethod
    def with_cache(cls, producer: Iterable[T], initial_cache: Iterable[T]) -> "MemoizedSequence[T]":
        """Create a sequence whose first values were obtained elsewhere.

        ``producer`` continues after the last value of ``initial_cache``. The
        new sequence is never exhausted, even if ``producer`` happens to be
        empty; that is found out on the first call that needs it.
        """
        seq = cls(producer)
        seq._cache.extend(initial_cache)
        seq._capacity = len(seq._cache)
        return seq

    @classmethod
    def from_iterable(cls, source: Iterable[T]) -> "MemoizedSequence[T]":
        return cls(source)

    # --------- producer driving ----------
    def _ensure_usable(self):
        if self._consumed:
            raise SequenceConsumedError("This MemoizedSequence has been consumed")

    def _mark_exhausted(self):
        self._exhausted = True
        # Compaction: nothing past the current length will ever be needed.
        self._capacity = len(self._cache)
        logger.info("Producer exhausted after %d values", len(self._cache))

    def _pull(self):
        """Ask the producer for one more value and cache it."""
        try:
            value = next(self._producer)
        except StopIteration:
            self._mark_exhausted()
            return _MISSING
        self._producer_calls += 1
        self._cache.append(value)
        return value

    def _expand_to_contain(self, index: int):
        """Make sure ``index`` is cached, unless the producer runs out first."""
        length = len(self._cache)
        if self._exhausted or index < length:
            self._hits += 1
            return
        self._misses += 1
        self._capacity = max(self._capacity, index + 1)
        logger.debug("Expanding cache from %d to contain index %d", length, index)
        while len(self._cache) <= index:
            if self._pull() is _MISSING:
                return

    # --------- indexed access ----------
    def get(self, index: int, default=None):
        """Return the value at ``index``, producing it if needed.

        Returns ``default`` when the producer runs out before ``index``.
        """
        self._ensure_usable()
        index = _check_index(index)
        self._expand_to_contain(index)
        if index < len(self._cache):
            return self._cache[index]
        return default

    def recall(self, index: int, default=None):
        """Return the value at ``index`` if it was already produced.

        Never calls the producer.
        """
        self._ensure_usable()
        index = _check_index(index)
        if index < len(self._cache):
            return self._cache[index]
        return default

    def evaluated_count(self) -> int:
        """How many values have been produced (and cached) so far."""
        self._ensure_usable()
        return len(self._cache)

    def is_exhausted(self) -> bool:
        self._ensure_usable()
        return self._exhausted

    def capacity(self) -> int:
        self._ensure_usable()
        return max(self._capacity, len(self._cache))

    # --------- range retrieval ----------
    def get_slice(self, index_range: Union[IndexRange, slice]) -> CacheView:
        """
        Return a view of the cached values in ``index_range``.

        An open end never calls the producer: ``get_slice(IndexRange.full())``
        just shows what has been cached so far. A bounded end produces values
        up to it. Ranges reaching past the end of an exhausted producer are
        clipped, and ranges that start past the end (or are inverted) give an
        empty view.

        A ``slice`` is treated as an included start and excluded stop; its
        step, which must be positive, is applied to the resulting window.
        """
        self._ensure_usable()
        step = None
        if isinstance(index_range, slice):
            step = index_range.step
            if step is not None and operator.index(step) <= 0:
                raise ValueError(f"Slice step must be positive, got {step}")
            index_range = IndexRange.from_slice(index_range)
        elif not isinstance(index_range, IndexRange):
            raise TypeError(
                f"Expected an IndexRange or slice, not {type(index_range).__name__}"
            )

        positions = self._window(index_range)
        if step is not None:
            positions = positions[::step]
        return CacheView(self._cache, positions)

    def _window(self, index_range: IndexRange) -> range:
        start = index_range.first_index()
        end = index_range.end

        if end.kind is BoundKind.UNBOUNDED:
            length = len(self._cache)
            return range(min(start, length), length)

        if end.kind is BoundKind.INCLUDED:
            self._expand_to_contain(end.index)
            last = min(len(self._cache) - 1, end.index)
            if start > last:
                # Also covers an empty cache, where last is -1.
                return range(0)
            return range(start, last + 1)

        if end.index > 0:
            self._expand_to_contain(end.index - 1)
        stop = min(len(self._cache), end.index)
        return range(min(start, stop), stop)

    def view(self) -> CacheView:
        """Everything cached so far. Never calls the producer."""
        return self.get_slice(IndexRange.full())

    @property
    def cached(self) -> CacheView:
        return self.view()

    def __getitem__(self, key):
        if isinstance(key, (slice, IndexRange)):
            return self.get_slice(key)
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise IndexError(f"Index {key} is past the end of the sequence")
        return value

    # --------- iterator protocol ----------
    def __iter__(self):
        return self

    def __next__(self) -> T:
        """Produce, cache and return the next value of the wrapped producer."""
        self._ensure_usable()
        if self._exhausted:
            raise StopIteration
        value = self._pull()
        if value is _MISSING:
            raise StopIteration
        return value

    def advance(self, default=_MISSING):
        """Single step of the sequence, like ``next(seq, default)``."""
        try:
            return next(self)
        except StopIteration:
            if default is _MISSING:
                raise
            return default

    def iter_from(self, start: int = 0) -> Iterator[T]:
        """Walk the sequence by index from ``start``, cached values first."""
        self._ensure_usable()
        return self._walk(_check_index(start))

    def _walk(self, index: int) -> Iterator[T]:
        while True:
            value = self.get(index, _MISSING)
            if value is _MISSING:
                return
            yield value
            index += 1

    # --------- length ----------
    def _remaining_count(self) -> Optional[int]:
        return remaining_count(self._producer)

    def has_exact_length(self) -> bool:
        """Whether the producer can report exactly how many values it has left."""
        self._ensure_usable()
        return self._remaining_count() is not None

    def length(self) -> int:
        """Total length: values cached plus values the producer has left.

        Only available when the producer reports an exact remaining count;
        raises ``TypeError`` otherwise.
        """
        self._ensure_usable()
        remaining = self._remaining_count()
        if remaining is None:
            raise TypeError(
                f"Producer of type {type(self._producer).__name__} does not report an exact length"
            )
        return len(self._cache) + remaining

    def __len__(self):
        return self.length()

    def __length_hint__(self):
        self._ensure_usable()
        if self._exhausted:
            return len(self._cache)
        try:
            return len(self._cache) + operator.length_hint(self._producer)
        except OverflowError:
            return len(self._cache)

    def __bool__(self):
        # Only known to be empty once the producer has run dry with nothing cached.
        self._ensure_usable()
        return bool(self._cache) or not self._exhausted

    # Membership would have to walk a possibly infinite producer.
    __contains__ = None

    # --------- statistics ----------
    def stats(self) -> SequenceStats:
        self._ensure_usable()
        return SequenceStats(
            evaluated_count=len(self._cache),
            exhausted=self._exhausted,
            capacity=self.capacity(),
            producer_calls=self._producer_calls,
            hits=self._hits,
            misses=self._misses,
        )

    # --------- teardown ----------
    def consume(self) -> Tuple[List[T], Iterator[T]]:
        """Hand back the cache and the producer; the sequence is unusable afterwards."""
        self._ensure_usable()
        cache, producer = self._cache, self._producer
        self._cache = None
        self._producer = None
        self._consumed = True
        return cache, producer

    def __repr__(self):
        if self._consumed:
            return "MemoizedSequence(<consumed>)"
        return (
            f"MemoizedSequence(evaluated={len(self._cache)}, "
            f"exhausted={self._exhausted})"
        )
