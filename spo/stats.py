from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(n: int) -> str:
    """
    Human-readable size, base 1024.

      0    -> "0 B"
      1536 -> "1.5 KB"
    """
    if n == 0:
        return "0 B"
    sign = "-" if n < 0 else ""
    n = abs(n)
    i = 0
    while i < len(_UNITS) - 1 and n >= 1024 ** (i + 1):
        i += 1
    value = round(n / (1024 ** i), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{sign}{text} {_UNITS[i]}"


@dataclass(frozen=True)
class Savings:
    saved_bytes: int
    saved_percentage: float
    compression_ratio: float


@dataclass(frozen=True)
class RunStats:
    original_size: int
    optimized_size: int
    files_processed: int
    elapsed_millis: int

    @property
    def saved_bytes(self) -> int:
        return self.original_size - self.optimized_size

    def savings(self) -> Savings:
        return compute_savings(self.original_size, self.optimized_size)


def compute_savings(original_size: int, optimized_size: int) -> Savings:
    saved = original_size - optimized_size
    if original_size <= 0:
        return Savings(saved_bytes=saved, saved_percentage=0.0, compression_ratio=1.0)
    return Savings(
        saved_bytes=saved,
        saved_percentage=round(saved / original_size * 100.0, 2),
        compression_ratio=round(optimized_size / original_size, 4),
    )


class StatsAccumulator:
    """
    Running totals for a single optimize() call.

    Totals only ever grow. Create a new one per run; never share between runs.
    """

    def __init__(self) -> None:
        self.original_size = 0
        self.optimized_size = 0
        self.files_processed = 0
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def start(self) -> None:
        self._started = time.perf_counter()
        self._stopped = None

    def stop(self) -> None:
        self._stopped = time.perf_counter()

    @property
    def elapsed_millis(self) -> int:
        if self._started is None:
            return 0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return int((end - self._started) * 1000)

    def record(self, original_size: int, optimized_size: int) -> None:
        if original_size < 0 or optimized_size < 0:
            raise ValueError("sizes must be non-negative")
        self.original_size += original_size
        self.optimized_size += optimized_size
        self.files_processed += 1

    def report(self) -> RunStats:
        return RunStats(
            original_size=self.original_size,
            optimized_size=self.optimized_size,
            files_processed=self.files_processed,
            elapsed_millis=self.elapsed_millis,
        )

    def savings(self) -> Savings:
        return compute_savings(self.original_size, self.optimized_size)


def render_summary(stats: RunStats) -> str:
    s = stats.savings()
    lines = [
        "=== Optimization Summary ===",
        f"Files processed : {stats.files_processed}",
        f"Original size   : {format_bytes(stats.original_size)}",
        f"Optimized size  : {format_bytes(stats.optimized_size)}",
        f"Saved           : {format_bytes(s.saved_bytes)} ({s.saved_percentage:.2f}%)",
        f"Time            : {stats.elapsed_millis / 1000:.2f}s",
        f"Ratio           : {s.compression_ratio:.4f}",
    ]
    if s.saved_bytes > 0:
        lines.append("Done. Assets are smaller now.")
    else:
        lines.append("Nothing saved: files were already optimized.")
    return "\n".join(lines)
