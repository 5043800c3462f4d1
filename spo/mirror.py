from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Sequence


BACKUP_DIRNAME = "backup"


def output_path_for(output_root: Path, relative_path: PurePosixPath) -> Path:
    return Path(output_root).joinpath(*PurePosixPath(relative_path).parts)


def write_output(output_root: Path, relative_path: PurePosixPath, content: bytes) -> Path:
    """
    Write content to output_root/relative_path, creating parent dirs as needed.

    Existing files are replaced. A parent path that exists as a regular file
    raises an OSError from mkdir; nothing is retried.
    """
    out_path = output_path_for(output_root, relative_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    # Write to a temp file first so a failed write never leaves a truncated file
    fd, tmp_name = tempfile.mkstemp(prefix=".spo_", dir=str(out_path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        tmp_path.replace(out_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    return out_path


def copy_tree(src: Path, dest: Path, exclude: Sequence[Path] = ()) -> int:
    """
    Deep-copy every entry under src into dest, preserving structure.

    exclude:
        Directories under src that are skipped (the output root and the
        backup dir, so a backup never copies itself).

    Returns the number of files copied.
    """
    src = Path(src)
    dest = Path(dest)
    exclude_resolved = {Path(e).resolve() for e in exclude}

    dest.mkdir(parents=True, exist_ok=True)
    copied = 0

    for entry in sorted(src.iterdir(), key=lambda p: p.name):
        if entry.resolve() in exclude_resolved:
            continue
        target = dest / entry.name

        if entry.is_dir() and not entry.is_symlink():
            copied += copy_tree(entry, target, exclude=exclude)
        elif entry.is_symlink() and entry.is_dir():
            # Copy the link itself; following it could escape src or loop.
            if target.is_symlink() or target.exists():
                target.unlink()
            target.symlink_to(os.readlink(entry))
        else:
            shutil.copy2(entry, target)
            copied += 1

    return copied


def backup_tree(input_root: Path, output_root: Path) -> Path:
    backup_dir = Path(output_root) / BACKUP_DIRNAME
    exclude = [backup_dir]
    if Path(output_root).resolve() != Path(input_root).resolve():
        exclude.append(Path(output_root))
    copy_tree(input_root, backup_dir, exclude=exclude)
    return backup_dir


def needs_update(src_path: Path, out_path: Path) -> bool:
    """True when out_path is missing or older than src_path."""
    try:
        out_mtime = out_path.stat().st_mtime_ns
    except FileNotFoundError:
        return True
    return src_path.stat().st_mtime_ns > out_mtime
