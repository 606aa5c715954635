"""Models for memoized sequence statistics and performance samples."""

from typing import Optional
from pydantic import BaseModel, Field


class SequenceStats(BaseModel):
    """Snapshot of a MemoizedSequence's cache and producer usage."""
    evaluated_count: int = Field(..., ge=0, description="Number of values cached so far")
    exhausted: bool = Field(..., description="Whether the producer has run out")
    capacity: int = Field(..., ge=0, description="Capacity hint, never below evaluated_count")
    producer_calls: int = Field(
        ...,
        ge=0,
        description="Values obtained from the producer by this sequence (excludes a pre-populated cache)"
    )
    hits: int = Field(..., ge=0, description="Forcing requests answered without calling the producer")
    misses: int = Field(..., ge=0, description="Forcing requests that had to call the producer")

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class PerformanceSample(BaseModel):
    """Timing and memory measurement of one operation."""
    operation: str = Field(..., min_length=1, description="Name of the measured operation")
    execution_time_ms: float = Field(..., ge=0, description="Wall time in milliseconds")
    memory_usage_mb: float = Field(..., ge=0, description="Peak traced Python allocations in MB")
    rss_delta_mb: float = Field(0.0, description="Change in process resident memory in MB")
    success: bool = Field(..., description="Whether the operation returned normally")
    result_size: Optional[int] = Field(None, description="len() of the result, when it has one")
    error: Optional[str] = Field(None, description="Error message if the operation raised")
    timestamp: float = Field(..., description="Unix time the measurement finished")
