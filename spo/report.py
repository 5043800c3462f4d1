from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence

from .results import CATEGORIES, Category, CompressionResult
from .stats import RunStats, format_bytes
from .walker import enumerate_category


@dataclass(frozen=True)
class FileReport:
    path: str
    category: str
    out_path: Optional[str]
    original_size: int
    optimized_size: int
    saved_bytes: int
    saved_percent: float
    success: bool
    derived_path: Optional[str]
    skipped_reason: Optional[str]


@dataclass(frozen=True)
class RunReport:
    created_utc: str
    summary: dict
    files: List[FileReport]


def build_report(results: Sequence[CompressionResult], stats: RunStats) -> RunReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in results:
        files.append(
            FileReport(
                path=r.task.relative_path.as_posix(),
                category=r.task.category,
                out_path=str(r.out_path) if r.out_path else None,
                original_size=r.original_size,
                optimized_size=r.optimized_size,
                saved_bytes=r.saved_bytes,
                saved_percent=round(r.saved_percent, 2),
                success=r.success,
                derived_path=str(r.derived_path) if r.derived_path else None,
                skipped_reason=r.skipped_reason,
            )
        )

    s = stats.savings()
    summary_dict = {
        "files_processed": stats.files_processed,
        "original_size": stats.original_size,
        "optimized_size": stats.optimized_size,
        "saved_bytes": s.saved_bytes,
        "saved_percentage": s.saved_percentage,
        "compression_ratio": s.compression_ratio,
        "elapsed_millis": stats.elapsed_millis,
    }

    return RunReport(created_utc=created_utc, summary=summary_dict, files=files)


def save_report_json(report: RunReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


def save_report_csv(report: RunReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    columns = list(FileReport.__dataclass_fields__)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in report.files:
            writer.writerow(asdict(row))


def save_report(report: RunReport, path: Path) -> None:
    if Path(path).suffix.lower() == ".csv":
        save_report_csv(report, path)
    else:
        save_report_json(report, path)


@dataclass(frozen=True)
class CategoryAnalysis:
    files: List[PurePosixPath] = field(default_factory=list)
    sizes: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.files)

    @property
    def total_size(self) -> int:
        return sum(self.sizes)


@dataclass(frozen=True)
class TreeAnalysis:
    """Read-only inventory of a tree, per category. Nothing is written."""
    root: Path
    categories: Dict[Category, CategoryAnalysis]

    @property
    def html_files(self) -> List[PurePosixPath]:
        return self.categories["html"].files

    @property
    def css_files(self) -> List[PurePosixPath]:
        return self.categories["css"].files

    @property
    def js_files(self) -> List[PurePosixPath]:
        return self.categories["js"].files

    @property
    def image_files(self) -> List[PurePosixPath]:
        return self.categories["image"].files

    @property
    def file_count(self) -> int:
        return sum(c.count for c in self.categories.values())

    @property
    def total_size(self) -> int:
        return sum(c.total_size for c in self.categories.values())

    def to_dict(self) -> dict:
        return {
            "root": str(self.root),
            "file_count": self.file_count,
            "total_size": self.total_size,
            "categories": {
                name: {
                    "count": c.count,
                    "total_size": c.total_size,
                    "files": [
                        {"path": p.as_posix(), "size": size}
                        for p, size in zip(c.files, c.sizes)
                    ],
                }
                for name, c in self.categories.items()
            },
        }


def analyze_tree(root: Path) -> TreeAnalysis:
    root = Path(root)
    categories: Dict[Category, CategoryAnalysis] = {}
    for category in CATEGORIES:
        files = enumerate_category(root, category)
        sizes = [root.joinpath(*p.parts).stat().st_size for p in files]
        categories[category] = CategoryAnalysis(files=files, sizes=sizes)
    return TreeAnalysis(root=root, categories=categories)


CATEGORY_LABELS: Dict[Category, str] = {
    "html": "HTML",
    "css": "CSS",
    "js": "JavaScript",
    "image": "Images",
}


def render_analysis(analysis: TreeAnalysis, verbose: bool = False) -> str:
    lines = [f"=== Asset Analysis: {analysis.root} ==="]
    for category, c in analysis.categories.items():
        lines.append(f"{CATEGORY_LABELS[category]:<11}: {c.count} files ({format_bytes(c.total_size)})")
    lines.append(f"{'Total':<11}: {analysis.file_count} files ({format_bytes(analysis.total_size)})")

    if verbose:
        for category, c in analysis.categories.items():
            if not c.files:
                continue
            lines.append("")
            lines.append(f"{CATEGORY_LABELS[category]}:")
            for p, size in zip(c.files, c.sizes):
                lines.append(f"  {p.as_posix()} ({format_bytes(size)})")

    return "\n".join(lines)
