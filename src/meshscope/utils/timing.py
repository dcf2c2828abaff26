"""
Timing utilities for mesh processing stages.

Provides:
- A per-run timing log
- A context manager that records how long an operation took
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("meshscope.timing")


@dataclass
class TimingResult:
    """Result of a timed operation."""
    operation: str
    elapsed_seconds: float
    success: bool
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "OK" if self.success else "ERROR"
        return f"{self.operation}: {self.elapsed_seconds:.3f}s [{status}]"


@dataclass
class TimingLog:
    """Accumulated timing information for a session."""
    entries: list[TimingResult] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    def add(self, result: TimingResult):
        """Add a timing result."""
        self.entries.append(result)
        logger.debug(str(result))

    def total_time(self) -> float:
        """Total elapsed time."""
        return time.time() - self.start_time

    def summary(self) -> str:
        """Generate summary of all timings."""
        lines = ["Timing Summary:", "-" * 40]
        for entry in self.entries:
            lines.append(f"  {entry}")
        lines.append("-" * 40)
        lines.append(f"  Total: {self.total_time():.3f}s")
        return "\n".join(lines)

    def get_slowest(self, n: int = 3) -> list[TimingResult]:
        """Get the n slowest operations."""
        return sorted(self.entries, key=lambda x: x.elapsed_seconds, reverse=True)[:n]


_current_timing_log: Optional[TimingLog] = None


def get_timing_log() -> TimingLog:
    """Get or create the current timing log."""
    global _current_timing_log
    if _current_timing_log is None:
        _current_timing_log = TimingLog()
    return _current_timing_log


def reset_timing_log() -> TimingLog:
    """Reset the timing log for a new run."""
    global _current_timing_log
    _current_timing_log = TimingLog()
    return _current_timing_log


@contextmanager
def timed_operation(name: str, log: bool = True, timing_log: Optional[TimingLog] = None):
    """
    Context manager for timing an operation.

    Args:
        name: Name of the operation for logging
        log: Whether to record the timing
        timing_log: Log to record into (default: the current global log)

    Yields:
        TimingResult that will be populated on exit
    """
    result = TimingResult(operation=name, elapsed_seconds=0, success=False)
    start = time.time()

    try:
        yield result
        result.success = True
    except Exception as e:
        result.error = str(e)
        raise
    finally:
        result.elapsed_seconds = time.time() - start
        if log:
            (timing_log or get_timing_log()).add(result)
