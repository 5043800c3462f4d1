from __future__ import annotations

import fnmatch
import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence

from .results import CATEGORIES, Category


CATEGORY_PATTERNS: Dict[Category, tuple[str, ...]] = {
    "html": ("**/*.html",),
    "css": ("**/*.css",),
    "js": ("**/*.js",),
    "image": (
        "**/*.jpg",
        "**/*.jpeg",
        "**/*.png",
        "**/*.gif",
        "**/*.svg",
        "**/*.webp",
    ),
}


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _match_parts(parts: Sequence[str], pats: Sequence[str]) -> bool:
    if not pats:
        return not parts
    if pats[0] == "**":
        for i in range(len(parts) + 1):
            if _match_parts(parts[i:], pats[1:]):
                return True
            # "**" does not descend into dot-directories
            if i < len(parts) and _is_hidden(parts[i]):
                return False
        return False
    if not parts:
        return False
    # Wildcards never match a leading dot; only a literal "." in the pattern does.
    if _is_hidden(parts[0]) and not _is_hidden(pats[0]):
        return False
    return fnmatch.fnmatchcase(parts[0], pats[0]) and _match_parts(parts[1:], pats[1:])


def _pattern_matches(rel: PurePosixPath, pattern: str) -> bool:
    """
    Match a relative POSIX path against a glob pattern, segment by segment.

    "**" matches zero or more directories. Matching is case-sensitive.
    Dotfiles and dot-directories only match pattern segments that start
    with a dot.
    """
    return _match_parts(rel.parts, pattern.split("/"))


def classify(path: PurePosixPath | str) -> Optional[Category]:
    rel = PurePosixPath(path)
    for category in CATEGORIES:
        if any(_pattern_matches(rel, p) for p in CATEGORY_PATTERNS[category]):
            return category
    return None


def _walk(root: Path, exclude: Sequence[Path]) -> Iterable[PurePosixPath]:
    root_resolved = root.resolve()

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        current = Path(dirpath)

        # Never descend into symlinked directories or the excluded tree.
        keep = []
        for d in dirnames:
            sub = current / d
            if sub.is_symlink():
                continue
            if sub.resolve() in exclude:
                continue
            keep.append(d)
        dirnames[:] = keep

        for name in filenames:
            f = current / name
            if f.is_symlink():
                target = f.resolve()
                if not target.is_relative_to(root_resolved) or not target.is_file():
                    continue
            elif not f.is_file():
                continue
            yield PurePosixPath(f.relative_to(root).as_posix())


def enumerate_files(
    root: Path,
    patterns: Sequence[str],
    exclude: Sequence[Path] = (),
) -> List[PurePosixPath]:
    """
    List files under root matching any of the glob patterns.

    Paths are relative to root and sorted, so an unmodified tree always
    enumerates the same list.

    exclude:
        Directories that are not walked.
        (Prevents re-processing output files when the output dir is inside root.)
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Input directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Input path is not a directory: {root}")

    root_resolved = root.resolve()
    exclude_resolved = [p for p in (Path(e).resolve() for e in exclude) if p != root_resolved]

    found = [
        rel
        for rel in _walk(root, exclude_resolved)
        if any(_pattern_matches(rel, p) for p in patterns)
    ]
    return sorted(found, key=lambda p: p.as_posix())


def enumerate_category(
    root: Path,
    category: Category,
    exclude: Sequence[Path] = (),
) -> List[PurePosixPath]:
    return enumerate_files(root, CATEGORY_PATTERNS[category], exclude=exclude)
