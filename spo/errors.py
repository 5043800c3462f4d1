from __future__ import annotations

from pathlib import PurePath
from typing import Optional


class OptimizerError(Exception):
    """Base class for errors raised by spo."""


class ConfigError(OptimizerError):
    """Missing or malformed configuration."""


class CompressionError(OptimizerError):
    """
    An adapter rejected a file.

    The pipeline does not catch this: one bad file stops the whole run.
    """

    def __init__(
        self,
        message: str,
        path: Optional[PurePath] = None,
        category: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.category = category

    def __str__(self) -> str:
        msg = super().__str__()
        if self.path is not None:
            return f"{self.path}: {msg}"
        return msg
