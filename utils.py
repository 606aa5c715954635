"""
Utility functions for memoized sequences

Helpers for measuring how long forcing a sequence takes and how much memory
it uses, and for checking that repeated lookups are served from the cache.
"""

import gc
import logging
import os
import time
import tracemalloc
from typing import Any, Callable, Dict, Iterable, List, Tuple

import psutil

from memoseq import MemoizedSequence
from models import PerformanceSample

logger = logging.getLogger(__name__)


# Global performance tracking
_performance_samples: List[PerformanceSample] = []


def _rss_mb() -> float:
    return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024


def _result_size(result: Any):
    # len() of a MemoizedSequence may not exist, and must not force anything
    if isinstance(result, MemoizedSequence):
        return result.evaluated_count()
    try:
        return len(result)
    except TypeError:
        # No __len__, or one that refuses (e.g. CountingIterator over count())
        return None


def measure_performance(operation_name: str, func: Callable[..., Any], *args, **kwargs) -> Tuple[Any, PerformanceSample]:
    """Call ``func`` and measure its wall time, peak allocations and RSS growth.

    Returns ``(result, sample)``. The sample is also recorded for
    :func:`get_performance_summary`. If ``func`` raises, the failure is
    recorded and the exception propagates.
    """
    gc.collect()
    rss_before = _rss_mb()
    tracemalloc.start()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)

        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()

        sample = PerformanceSample(
            operation=operation_name,
            execution_time_ms=execution_time_ms,
            memory_usage_mb=peak / 1024 / 1024,
            rss_delta_mb=_rss_mb() - rss_before,
            success=True,
            result_size=_result_size(result),
            timestamp=time.time(),
        )
        _performance_samples.append(sample)
        logger.debug("%s took %.2f ms", operation_name, execution_time_ms)
        return result, sample

    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()

        sample = PerformanceSample(
            operation=operation_name,
            execution_time_ms=execution_time_ms,
            memory_usage_mb=peak / 1024 / 1024,
            rss_delta_mb=_rss_mb() - rss_before,
            success=False,
            error=str(e),
            timestamp=time.time(),
        )
        _performance_samples.append(sample)
        logger.warning("%s failed after %.2f ms: %s", operation_name, execution_time_ms, e)
        raise

    finally:
        tracemalloc.stop()


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all recorded performance samples"""
    count = len(_performance_samples)
    if count == 0:
        return {
            "total_operations": 0,
            "failed_operations": 0,
            "total_time_ms": 0.0,
            "avg_time_ms": 0.0,
            "max_memory_mb": 0.0,
        }

    total_time_ms = sum(s.execution_time_ms for s in _performance_samples)
    return {
        "total_operations": count,
        "failed_operations": sum(1 for s in _performance_samples if not s.success),
        "total_time_ms": total_time_ms,
        "avg_time_ms": total_time_ms / count,
        "max_memory_mb": max(s.memory_usage_mb for s in _performance_samples),
    }


def get_performance_samples() -> List[PerformanceSample]:
    return list(_performance_samples)


def clear_performance_metrics():
    """Clear all recorded performance samples"""
    _performance_samples.clear()


def compare_cold_and_warm(seq: MemoizedSequence, index: int) -> Dict[str, PerformanceSample]:
    """Time ``seq.get(index)`` twice: once producing, once from the cache."""
    _, cold = measure_performance(f"cold_get_{index}", seq.get, index)
    _, warm = measure_performance(f"warm_get_{index}", seq.get, index)
    return {"cold": cold, "warm": warm}


def validate_memoization(seq: MemoizedSequence, indexes: Iterable[int]) -> bool:
    """Check that looking ``indexes`` up a second time doesn't call the producer.

    Every index is forced once first; the sequence is left with those values
    cached.
    """
    indexes = list(indexes)
    first = [seq.get(i) for i in indexes]
    calls_before = seq.stats().producer_calls
    second = [seq.get(i) for i in indexes]
    calls_after = seq.stats().producer_calls

    if first != second:
        logger.warning("Cached values changed between lookups: %r != %r", first, second)
        return False
    if calls_after != calls_before:
        logger.warning("Repeated lookups made %d producer calls", calls_after - calls_before)
        return False
    return True
