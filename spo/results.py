from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Literal, Optional


# Processing order of the pipeline. Also the order categories appear in reports.
Category = Literal["html", "css", "js", "image"]
CATEGORIES: tuple[Category, ...] = ("html", "css", "js", "image")


@dataclass(frozen=True)
class FileTask:
    """One file found by the walker, relative to the input root."""
    relative_path: PurePosixPath
    category: Category


@dataclass(frozen=True)
class CompressionResult:
    """
    Output of processing a single file.

    Keeping it immutable (frozen=True) makes it easier to reason about.
    """
    task: FileTask
    original_size: int
    optimized_size: int
    success: bool
    out_path: Optional[Path] = None  # None if nothing was written
    derived_path: Optional[Path] = None  # WebP side output, if any
    error_detail: Optional[str] = None
    skipped_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and self.optimized_size < 0:
            raise ValueError("optimized_size cannot be negative")

    @property
    def saved_bytes(self) -> int:
        return self.original_size - self.optimized_size

    @property
    def saved_percent(self) -> float:
        if self.original_size <= 0:
            return 0.0
        return (self.saved_bytes / self.original_size) * 100.0
