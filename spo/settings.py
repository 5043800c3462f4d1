from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

from .errors import ConfigError
from .results import CATEGORIES, Category


# Config-file key for each category ("images" is plural in the file format).
CATEGORY_KEYS: Dict[Category, str] = {
    "html": "html",
    "css": "css",
    "js": "js",
    "image": "images",
}

DEFAULT_CONFIG_NAME = "optimizer.config.json"


# Documented defaults. Nested category settings are handed to the
# adapters as-is; keys they don't know are ignored there.
DEFAULT_OPTIONS: Dict[str, Any] = {
    "inputDir": "./",
    "outputDir": "./dist",
    "html": {
        "enabled": True,
        # htmlmin.minify keyword arguments
        "remove_comments": True,
        "remove_empty_space": True,
        "remove_all_empty_space": False,
        "reduce_empty_attributes": True,
        "reduce_boolean_attributes": True,
        "remove_optional_attribute_quotes": True,
        "convert_charrefs": True,
        "keep_pre": False,
    },
    "css": {
        "enabled": True,
        # 0 = copy, 1 = minify, 2 = minify + drop empty rules / duplicate selectors
        "level": 2,
        "keep_bang_comments": False,
    },
    "js": {
        "enabled": True,
        "keep_bang_comments": False,
        "drop_console": True,
        "drop_debugger": True,
    },
    "images": {
        "enabled": True,
        "strip_metadata": True,
        # keep the original bytes when re-encoding makes a raster image bigger
        "only_if_smaller": True,
        "jpeg": {"quality": 80, "progressive": True, "optimize": True},
        "png": {"optimize": True, "compress_level": 9},
        "gif": {"optimize": True},
        "webp": {"quality": 80, "method": 6, "lossless": False},
        "svg": {"keep_license_comments": True},
        "generateWebP": False,
    },
    "backup": False,
    "verbose": False,
    "incremental": False,
}


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a new dict with source merged over target.

    Nested dicts merge recursively. Lists and primitives replace.
    Neither input is modified.
    """
    result: Dict[str, Any] = copy.deepcopy(dict(target))
    for key, value in source.items():
        if isinstance(value, Mapping):
            base = result.get(key)
            result[key] = deep_merge(base if isinstance(base, Mapping) else {}, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _normalize_categories(options: Mapping[str, Any]) -> Dict[str, Any]:
    # A bare boolean toggles the category and keeps its default settings.
    out = dict(options)
    for key in CATEGORY_KEYS.values():
        if key not in out:
            continue
        value = out[key]
        if isinstance(value, bool):
            out[key] = {"enabled": value}
        elif not isinstance(value, Mapping):
            raise ConfigError(
                f"'{key}' must be a boolean or an object, got {type(value).__name__}"
            )
    return out


def validate(user_options: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge user options over DEFAULT_OPTIONS. Unknown keys pass through."""
    if not isinstance(user_options, Mapping):
        raise ConfigError("options must be an object")
    return deep_merge(DEFAULT_OPTIONS, _normalize_categories(user_options))


def load_config_file(path: Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not UTF-8: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def save_default_config(path: Path, overwrite: bool = False) -> Path:
    path = Path(path)
    if path.exists() and not overwrite:
        raise ConfigError(f"{path} already exists (use --force to overwrite)")

    with path.open("w", encoding="utf-8") as f:
        json.dump(DEFAULT_OPTIONS, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def category_enabled(options: Mapping[str, Any], category: Category) -> bool:
    value = options.get(CATEGORY_KEYS[category], True)
    if isinstance(value, Mapping):
        return bool(value.get("enabled", True))
    return bool(value)


def category_settings(options: Mapping[str, Any], category: Category) -> Dict[str, Any]:
    value = options.get(CATEGORY_KEYS[category])
    if not isinstance(value, Mapping):
        return {}
    return {k: copy.deepcopy(v) for k, v in value.items() if k != "enabled"}


@dataclass(frozen=True)
class OptimizationRequest:
    """
    Everything one optimize() run needs, resolved from defaults, the config
    file and CLI flags. Not modified once the run starts.
    """

    input_root: Path
    output_root: Path
    categories: tuple[Category, ...] = CATEGORIES
    backup: bool = False
    verbose: bool = False
    incremental: bool = False

    # Opaque per-category adapter settings.
    category_config: Mapping[Category, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def config_for(self, category: Category) -> Mapping[str, Any]:
        return self.category_config.get(category, {})


def build_request(options: Mapping[str, Any]) -> OptimizationRequest:
    """Turn validated options into an OptimizationRequest."""
    categories = tuple(c for c in CATEGORIES if category_enabled(options, c))
    config = {c: MappingProxyType(category_settings(options, c)) for c in CATEGORIES}

    return OptimizationRequest(
        input_root=Path(str(options.get("inputDir", "./"))),
        output_root=Path(str(options.get("outputDir", "./dist"))),
        categories=categories,
        backup=bool(options.get("backup", False)),
        verbose=bool(options.get("verbose", False)),
        incremental=bool(options.get("incremental", False)),
        category_config=MappingProxyType(config),
    )
