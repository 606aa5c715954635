import logging
from time import sleep, perf_counter

from memoseq import IndexRange, MemoizedSequence
from recurrences import factorials, fibonacci
from utils import compare_cold_and_warm, get_performance_summary

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def slow(values, delay=0.05):
    # Simulate a costly producer so memoization is visible
    for value in values:
        print(f"  producing {value} ...")
        sleep(delay)
        yield value


print("\n--- Demo: values are produced only once ---")
fact = MemoizedSequence(slow(factorials()))
print("Constructed sequence. Nothing produced yet.")

t0 = perf_counter()
print(f"4! = {fact.get(4)}")
t1 = perf_counter()
print(f"Time: {t1 - t0:.2f}s\n")

t0 = perf_counter()
print(f"2! = {fact.get(2)} (already produced on the way to 4!)")
t1 = perf_counter()
print(f"Time: {t1 - t0:.4f}s\n")

print("--- Demo: slices ---")
print(f"0!..=7!: {fact.get_slice(IndexRange.closed(0, 7)).to_list()}")
print(f"Cached so far, without producing more: {fact.view().to_list()}\n")

print("--- Demo: finite producers ---")
finite = MemoizedSequence(range(5))
print(f"[4..=20]: {finite.get_slice(IndexRange.closed(4, 20)).to_list()}")
print(f"[10..=20]: {finite.get_slice(IndexRange.closed(10, 20)).to_list()}")
print(f"exhausted={finite.is_exhausted()} length={finite.length()}\n")

print("--- Demo: cold vs warm lookups ---")
fib = MemoizedSequence(fibonacci())
samples = compare_cold_and_warm(fib, 5000)
print(f"cold: {samples['cold'].execution_time_ms:.3f} ms")
print(f"warm: {samples['warm'].execution_time_ms:.3f} ms")
print(f"stats: {fib.stats().model_dump()}")
print(f"summary: {get_performance_summary()}")
