from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Mapping, Optional

from .adapters import CompressionAdapter
from .engine import ImageOptimizer
from .errors import CompressionError
from .minifiers import CssMinifier, HtmlMinifier, JsMinifier
from .mirror import BACKUP_DIRNAME, backup_tree, needs_update, output_path_for, write_output
from .results import CATEGORIES, Category, CompressionResult, FileTask
from .settings import OptimizationRequest
from .stats import RunStats, StatsAccumulator, format_bytes
from .walker import enumerate_category


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Category, int, int], None]


def default_adapters() -> Dict[Category, CompressionAdapter]:
    return {
        "html": HtmlMinifier(),
        "css": CssMinifier(),
        "js": JsMinifier(),
        "image": ImageOptimizer(),
    }


class StaticPageOptimizer:
    """
    Runs one request: optional backup, then html, css, js and images in that
    order, mirroring every file into the output root.

    Fail-fast: the first adapter or filesystem error stops the run. Files
    already written stay where they are. The WebP side output is the only
    thing allowed to fail quietly (a warning is logged).

    current_category / current_index tell where the run is, or where it
    stopped when optimize() raised.
    """

    def __init__(
        self,
        request: OptimizationRequest,
        adapters: Optional[Mapping[Category, CompressionAdapter]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self.request = request
        self.adapters: Dict[Category, CompressionAdapter] = {**default_adapters(), **dict(adapters or {})}
        self.progress_callback = progress_callback

        self.stats = StatsAccumulator()
        self.results: List[CompressionResult] = []
        self.category_counts: Dict[Category, int] = {}
        self.current_category: Optional[Category] = None
        self.current_index: Optional[int] = None
        self.backup_dir: Optional[Path] = None
        # derived target -> source that produced it in this run
        self.derived_claims: Dict[PurePosixPath, PurePosixPath] = {}

    @property
    def _exclude(self) -> List[Path]:
        out = self.request.output_root
        return [out, out / BACKUP_DIRNAME]

    def optimize(self) -> RunStats:
        req = self.request

        # Fresh accounting for every run.
        self.stats = StatsAccumulator()
        self.results = []
        self.category_counts = {}
        self.current_category = None
        self.current_index = None
        self.backup_dir = None
        self.derived_claims = {}
        self.stats.start()

        if not req.input_root.is_dir():
            raise FileNotFoundError(f"Input directory not found: {req.input_root}")

        req.output_root.mkdir(parents=True, exist_ok=True)

        if req.backup:
            self.create_backup()

        for category in CATEGORIES:
            if category in req.categories:
                self.process_category(category)

        self.current_category = None
        self.current_index = None
        self.stats.stop()
        return self.stats.report()

    def create_backup(self) -> Path:
        req = self.request
        logger.info("Backing up %s to %s", req.input_root, req.output_root / BACKUP_DIRNAME)
        self.backup_dir = backup_tree(req.input_root, req.output_root)
        return self.backup_dir

    def process_category(self, category: Category) -> int:
        req = self.request
        self.current_category = category
        self.current_index = None

        files = enumerate_category(req.input_root, category, exclude=self._exclude)
        total = len(files)
        done = 0

        for idx, rel in enumerate(files):
            self.current_index = idx
            if self.progress_callback:
                self.progress_callback(category, idx + 1, total)

            r = self.process_file(category, rel)
            self.results.append(r)
            if r.skipped_reason is None:
                done += 1

        self.category_counts[category] = done
        logger.info("%s: %d of %d files optimized", category, done, total)
        return done

    def process_file(self, category: Category, rel: PurePosixPath) -> CompressionResult:
        req = self.request
        adapter = self.adapters[category]
        config = req.config_for(category)
        task = FileTask(relative_path=rel, category=category)

        src_path = req.input_root.joinpath(*rel.parts)
        out_path = output_path_for(req.output_root, rel)

        if req.incremental and not needs_update(src_path, out_path):
            logger.info("%s: up to date, skipped", rel)
            return CompressionResult(
                task=task,
                original_size=src_path.stat().st_size,
                optimized_size=out_path.stat().st_size,
                success=True,
                out_path=out_path,
                derived_path=self._refresh_derived(adapter, src_path, config, rel),
                skipped_reason="up_to_date",
            )

        content = src_path.read_bytes()
        original_size = len(content)

        try:
            optimized = adapter.compress(content, config, rel)
        except CompressionError as e:
            logger.error("%s", e)
            raise
        except Exception as e:
            err = CompressionError(str(e), path=rel, category=category)
            logger.error("%s", err)
            raise err from e

        write_output(req.output_root, rel, optimized)
        self.stats.record(original_size, len(optimized))

        derived = self._write_derived(adapter, content, config, rel)

        logger.info("%s: %s -> %s", rel, format_bytes(original_size), format_bytes(len(optimized)))

        return CompressionResult(
            task=task,
            original_size=original_size,
            optimized_size=len(optimized),
            success=True,
            out_path=out_path,
            derived_path=derived,
        )

    def _derived_target(
        self,
        adapter: CompressionAdapter,
        config: Mapping,
        rel: PurePosixPath,
    ) -> Optional[PurePosixPath]:
        target = adapter.derived_path(rel, config)
        if target is None:
            return None

        # Never overwrite the mirror of an input or another source's side output.
        if self.request.input_root.joinpath(*target.parts).exists():
            logger.warning("%s: not writing %s, an input file has that name", rel, target)
            return None
        owner = self.derived_claims.get(target)
        if owner is not None and owner != rel:
            logger.warning("%s: not writing %s, already derived from %s", rel, target, owner)
            return None
        self.derived_claims[target] = rel
        return target

    def _write_derived(
        self,
        adapter: CompressionAdapter,
        content: bytes,
        config: Mapping,
        rel: PurePosixPath,
    ) -> Optional[Path]:
        target = self._derived_target(adapter, config, rel)
        if target is None:
            return None

        # Best effort: a failed side output never fails the primary file.
        try:
            return write_output(self.request.output_root, target, adapter.derive(content, config, rel))
        except (CompressionError, OSError) as e:
            logger.warning("%s: could not write %s: %s", rel, target, e)
            return None

    def _refresh_derived(
        self,
        adapter: CompressionAdapter,
        src_path: Path,
        config: Mapping,
        rel: PurePosixPath,
    ) -> Optional[Path]:
        """Side output for a skipped file: rebuilt only when missing or stale."""
        target = adapter.derived_path(rel, config)
        if target is None:
            return None

        derived_out = output_path_for(self.request.output_root, target)
        if not needs_update(src_path, derived_out):
            return derived_out if self._derived_target(adapter, config, rel) else None
        return self._write_derived(adapter, src_path.read_bytes(), config, rel)
