import pytest
from itertools import count

from memoseq import MemoizedSequence, SequenceConsumedError
from recurrences import CountingIterator, factorials, fibonacci


class TestConstruction:
    """Test the ways a memoized sequence can be created"""

    def test_starts_empty(self):
        """A new sequence has produced nothing yet"""
        producer = CountingIterator(factorials())
        seq = MemoizedSequence(producer)

        assert seq.evaluated_count() == 0
        assert seq.is_exhausted() is False
        assert producer.calls == 0, "Construction should not call the producer"

    def test_with_capacity_is_only_a_hint(self):
        """The cache grows past the requested capacity"""
        seq = MemoizedSequence.with_capacity(3, count())
        assert seq.capacity() == 3
        assert seq.evaluated_count() == 0

        assert seq.get(9) == 9
        assert seq.evaluated_count() == 10
        assert seq.capacity() == 10

    def test_with_capacity_rejects_negative(self):
        with pytest.raises(ValueError):
            MemoizedSequence.with_capacity(-1, count())
        with pytest.raises(TypeError):
            MemoizedSequence.with_capacity(2.5, count())

    def test_capacity_compacts_on_exhaustion(self):
        seq = MemoizedSequence.with_capacity(10, range(3))
        assert seq.get(5) is None
        assert seq.capacity() == 3

    def test_with_cache_continues_after_prefix(self):
        """The producer supplies the values after the pre-populated cache"""
        seq = MemoizedSequence.with_cache(iter([1, 2, 3, 4]), [0])

        assert seq.evaluated_count() == 1
        assert seq.recall(0) == 0
        assert seq.recall(1) is None, "recall must not force the producer"

        assert seq.get(10) is None
        assert seq.is_exhausted()
        assert seq.view() == [0, 1, 2, 3, 4]

    def test_with_cache_is_never_created_exhausted(self):
        """Exhaustion is only discovered by calling the producer"""
        seq = MemoizedSequence.with_cache(iter([]), [7, 8])
        assert seq.is_exhausted() is False
        assert seq.get(1) == 8
        assert seq.is_exhausted() is False

        assert seq.get(2) is None
        assert seq.is_exhausted() is True

    def test_from_iterable(self):
        seq = MemoizedSequence.from_iterable([10, 20, 30])
        assert seq.evaluated_count() == 0
        assert seq.get(2) == 30

    def test_repr(self):
        seq = MemoizedSequence(range(3))
        seq.get(1)
        assert repr(seq) == "MemoizedSequence(evaluated=2, exhausted=False)"


class TestIndexedAccess:
    """Test forcing and non-forcing lookups"""

    def test_factorial_scenario(self):
        """Values produced on the way to a larger index are reused"""
        seq = MemoizedSequence(factorials())

        assert seq.get(0) == 1
        assert seq.get(4) == 24
        assert seq.get(2) == 2
        assert seq.get(7) == 5040

        cache, _ = seq.consume()
        assert cache == [1, 1, 2, 6, 24, 120, 720, 5040]

    def test_fibonacci_scenario(self):
        seq = MemoizedSequence(fibonacci())

        assert seq.get(9) == 34
        assert seq.get(3) == 2

        cache, _ = seq.consume()
        assert cache == [0, 1, 1, 2, 3, 5, 8, 13, 21, 34]

    def test_no_recompute(self):
        """Requesting a smaller index issues no producer calls"""
        producer = CountingIterator(factorials())
        seq = MemoizedSequence(producer)

        seq.get(10)
        assert producer.calls == 11

        for i in range(11):
            seq.get(i)
        assert producer.calls == 11, f"Producer was called again: {producer.calls}"

    def test_get_is_idempotent(self):
        seq = MemoizedSequence(fibonacci())
        first = seq.get(20)
        seq.get(40)
        assert seq.get(20) == first == 6765

    def test_get_past_end_returns_default(self):
        seq = MemoizedSequence(range(5))
        assert seq.get(5) is None
        assert seq.get(100, "absent") == "absent"
        assert seq.get(4) == 4

    def test_recall_never_forces(self):
        producer = CountingIterator(count())
        seq = MemoizedSequence(producer)

        assert seq.recall(0) is None
        assert seq.recall(50, -1) == -1
        assert producer.calls == 0

        seq.get(3)
        assert seq.recall(2) == 2
        assert seq.recall(4) is None
        assert producer.calls == 4

    def test_subscript(self):
        seq = MemoizedSequence(range(3))
        assert seq[2] == 2
        with pytest.raises(IndexError):
            seq[3]

    def test_invalid_indexes(self):
        seq = MemoizedSequence(count())
        with pytest.raises(ValueError):
            seq.get(-1)
        with pytest.raises(ValueError):
            seq.recall(-3)
        with pytest.raises(TypeError):
            seq.get("1")
        assert seq.evaluated_count() == 0

    def test_falsy_values_are_not_absent(self):
        """A cached None or 0 is returned as-is"""
        seq = MemoizedSequence([None, 0])
        assert seq.get(0, "absent") is None
        assert seq.get(1, "absent") == 0
        assert seq.get(2, "absent") == "absent"


class TestExhaustion:
    """Test the terminal state of a finite producer"""

    def test_exhaustion_is_monotonic(self):
        producer = CountingIterator(range(3))
        seq = MemoizedSequence(producer)

        assert seq.get(10) is None
        assert seq.is_exhausted()
        assert seq.evaluated_count() == 3

        seq.get(20)
        seq[0:50]
        assert seq.advance(None) is None
        assert seq.is_exhausted()
        assert seq.evaluated_count() == 3
        assert producer.calls == 3

    def test_values_before_exhaustion_are_kept(self):
        seq = MemoizedSequence(range(4))
        assert seq.get(9) is None
        assert seq.view() == [0, 1, 2, 3]

    def test_membership_is_not_supported(self):
        """`in` must not walk an infinite producer"""
        producer = CountingIterator(count())
        seq = MemoizedSequence(producer)
        seq.get(3)

        with pytest.raises(TypeError):
            5 in seq
        assert producer.calls == 4, "Membership tests must not call the producer"
        assert 2 in seq.view(), "Cached values can still be searched through a view"

    def test_bool(self):
        """Truthiness never forces and never needs a length"""
        assert bool(MemoizedSequence(count()))

        empty = MemoizedSequence([])
        assert bool(empty), "Emptiness is unknown until the producer is called"
        empty.get(0)
        assert not empty


class TestProducerErrors:
    """Test that producer failures reach the caller untouched"""

    def test_error_propagates(self):
        def failing():
            yield 1
            yield 2
            raise ValueError("producer broke")

        seq = MemoizedSequence(failing())
        with pytest.raises(ValueError, match="producer broke"):
            seq.get(5)

        assert seq.evaluated_count() == 2, "Values produced before the error stay cached"
        assert seq.view() == [1, 2]
        assert seq.is_exhausted() is False

    def test_error_during_advance(self):
        def failing():
            raise KeyError("boom")
            yield

        seq = MemoizedSequence(failing())
        with pytest.raises(KeyError):
            next(seq)
        assert seq.evaluated_count() == 0


class TestConsume:
    """Test handing back the cache and producer"""

    def test_consume_returns_cache_and_producer(self):
        seq = MemoizedSequence(range(10))
        seq.get(2)

        cache, producer = seq.consume()
        assert cache == [0, 1, 2]
        assert next(producer) == 3, "Producer continues where the sequence left it"

    def test_consume_exhausted(self):
        seq = MemoizedSequence(range(2))
        seq.get(5)
        cache, producer = seq.consume()
        assert cache == [0, 1]
        assert list(producer) == []

    def test_unusable_after_consume(self):
        seq = MemoizedSequence(count())
        seq.consume()

        with pytest.raises(SequenceConsumedError):
            seq.get(0)
        with pytest.raises(SequenceConsumedError):
            seq.recall(0)
        with pytest.raises(SequenceConsumedError):
            seq.evaluated_count()
        with pytest.raises(SequenceConsumedError):
            next(seq)
        with pytest.raises(SequenceConsumedError):
            seq.consume()
        assert repr(seq) == "MemoizedSequence(<consumed>)"


class TestStats:
    """Test cache usage statistics"""

    def test_hits_and_misses(self):
        seq = MemoizedSequence(fibonacci())
        seq.get(5)
        seq.get(3)
        seq.recall(4)

        stats = seq.stats()
        assert stats.evaluated_count == 6
        assert stats.producer_calls == 6
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.hit_ratio == 0.5
        assert stats.exhausted is False

    def test_prepopulated_values_are_not_producer_calls(self):
        seq = MemoizedSequence.with_cache(iter([3, 4]), [1, 2])
        seq.get(3)
        stats = seq.stats()
        assert stats.evaluated_count == 4
        assert stats.producer_calls == 2

    def test_empty_hit_ratio(self):
        assert MemoizedSequence(count()).stats().hit_ratio == 0.0
