from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Mapping, Optional

from .errors import CompressionError
from .results import Category


class CompressionAdapter:
    """
    Wraps one third-party compressor.

    compress() takes the raw file bytes plus the category's settings and
    returns the reduced bytes, or raises CompressionError.

    Adapters that can produce a side output (e.g. a WebP copy of a PNG)
    override derived_path() and derive().
    """

    category: Category

    def compress(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        raise NotImplementedError

    def derived_path(self, path: PurePosixPath, config: Mapping[str, Any]) -> Optional[PurePosixPath]:
        return None

    def derive(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        raise NotImplementedError


def pick_options(config: Mapping[str, Any], names: Iterable[str]) -> Dict[str, Any]:
    """Keep only the keys a library call accepts."""
    return {k: config[k] for k in names if k in config}


def decode_text(content: bytes, path: PurePosixPath, category: Category) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CompressionError(f"not valid UTF-8 ({e.reason})", path=path, category=category) from e
