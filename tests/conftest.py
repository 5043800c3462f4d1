from pathlib import Path, PurePosixPath
from typing import Dict, Union

import pytest

from spo.adapters import CompressionAdapter
from spo.errors import CompressionError


def write_tree(root: Path, files: Dict[str, Union[bytes, str]]) -> Path:
    for rel, data in files.items():
        p = root.joinpath(*rel.split("/"))
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            data = data.encode("utf-8")
        p.write_bytes(data)
    return root


class DummyAdapter(CompressionAdapter):
    """Truncates content to a fixed size per path (half by default)."""

    def __init__(self, category, sizes=None, fail_on=(), webp=False, webp_fails=False):
        self.category = category
        self.sizes = dict(sizes or {})
        self.fail_on = set(fail_on)
        self.webp = webp
        self.webp_fails = webp_fails
        self.calls = []

    def compress(self, content, config, path):
        self.calls.append(path.as_posix())
        if path.as_posix() in self.fail_on:
            raise CompressionError("syntax error", path=path, category=self.category)
        n = self.sizes.get(path.as_posix(), len(content) // 2)
        return content[:n]

    def derived_path(self, path, config):
        if not self.webp:
            return None
        return PurePosixPath(path).with_suffix(".webp")

    def derive(self, content, config, path):
        if self.webp_fails:
            raise CompressionError("no webp encoder", path=path, category=self.category)
        return b"RIFFxxxxWEBP"


@pytest.fixture
def dummy_adapters():
    return {c: DummyAdapter(c) for c in ("html", "css", "js", "image")}
