from __future__ import annotations

import io
import logging
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .adapters import CompressionAdapter, decode_text
from .errors import CompressionError
from .minifiers import optimize_svg


logger = logging.getLogger(__name__)


SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp"}

# Raster formats that can get a WebP side output.
WEBP_SOURCE_EXTS = {".jpg", ".jpeg", ".png", ".gif"}

EXT_TO_FORMAT = {
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".png": "png",
    ".gif": "gif",
    ".webp": "webp",
}


def process_image(content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
    ext = path.suffix.lower()

    if ext not in SUPPORTED_EXTS:
        raise CompressionError(f"unsupported image format: {ext}", path=path, category="image")

    if ext == ".svg":
        text = decode_text(content, path, "image")
        svg_cfg = config.get("svg") or {}
        out = optimize_svg(text, keep_license_comments=bool(svg_cfg.get("keep_license_comments", True)))
        return out.encode("utf-8")

    out_format = EXT_TO_FORMAT[ext]
    strip_metadata = bool(config.get("strip_metadata", True))

    try:
        with Image.open(io.BytesIO(content)) as im:
            im.load()
            animated = getattr(im, "n_frames", 1) > 1

            # Auto-orient (important if we're stripping EXIF). Frames would be lost on animations.
            if strip_metadata and not animated:
                im = ImageOps.exif_transpose(im)

            save_kwargs = _build_save_kwargs(im, config, out_format, strip_metadata)
            if animated:
                save_kwargs["save_all"] = True

            buf = io.BytesIO()
            # Important: Pillow chooses encoder by format=... not extension alone
            im.save(buf, format=out_format.upper(), **save_kwargs)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise CompressionError(f"Pillow could not re-encode image: {e}", path=path, category="image") from e

    data = buf.getvalue()

    if config.get("only_if_smaller", True) and len(data) >= len(content):
        logger.debug("%s: re-encoded image is not smaller, keeping original bytes", path)
        return content

    return data


def convert_to_webp(content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
    try:
        with Image.open(io.BytesIO(content)) as im:
            im.load()
            im = ImageOps.exif_transpose(im)
            if im.mode not in ("RGB", "RGBA"):
                im = im.convert("RGBA" if _has_alpha(im) else "RGB")

            buf = io.BytesIO()
            im.save(buf, format="WEBP", **_build_save_kwargs(im, config, "webp", True))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise CompressionError(f"WebP conversion failed: {e}", path=path, category="image") from e
    return buf.getvalue()


def _build_save_kwargs(im: Image.Image, config: Mapping[str, Any], out_format: str, strip_metadata: bool) -> dict:
    kwargs: dict = {}
    fmt_cfg = config.get(out_format) or {}

    # If strip_metadata is False, keep EXIF if present (JPEG usually).
    # If True, we simply don't pass exif / icc_profile.
    if not strip_metadata:
        exif = im.info.get("exif")
        if exif is not None:
            kwargs["exif"] = exif

        icc = im.info.get("icc_profile")
        if icc is not None:
            kwargs["icc_profile"] = icc

    if out_format == "jpeg":
        kwargs["quality"] = int(fmt_cfg.get("quality", 80))
        kwargs["optimize"] = bool(fmt_cfg.get("optimize", True))
        kwargs["progressive"] = bool(fmt_cfg.get("progressive", True))

    elif out_format == "png":
        kwargs["compress_level"] = int(fmt_cfg.get("compress_level", 9))
        kwargs["optimize"] = bool(fmt_cfg.get("optimize", True))

    elif out_format == "gif":
        kwargs["optimize"] = bool(fmt_cfg.get("optimize", True))

    elif out_format == "webp":
        kwargs["quality"] = int(fmt_cfg.get("quality", 80))
        kwargs["lossless"] = bool(fmt_cfg.get("lossless", False))
        kwargs["method"] = int(fmt_cfg.get("method", 6))

    return kwargs


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


class ImageOptimizer(CompressionAdapter):
    category = "image"

    def compress(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        return process_image(content, config, path)

    def derived_path(self, path: PurePosixPath, config: Mapping[str, Any]) -> Optional[PurePosixPath]:
        if not config.get("generateWebP"):
            return None
        if path.suffix.lower() not in WEBP_SOURCE_EXTS:
            return None
        return path.with_suffix(".webp")

    def derive(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        return convert_to_webp(content, config, path)
