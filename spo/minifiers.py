from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Mapping

import htmlmin
import rcssmin
import rjsmin

from .adapters import CompressionAdapter, decode_text, pick_options
from .errors import CompressionError


# htmlmin.minify() keyword arguments we pass through.
HTML_OPTION_NAMES = (
    "remove_comments",
    "remove_empty_space",
    "remove_all_empty_space",
    "reduce_empty_attributes",
    "reduce_boolean_attributes",
    "remove_optional_attribute_quotes",
    "convert_charrefs",
    "keep_pre",
    "pre_tags",
    "pre_attr",
)

# Statement-position calls only; nested parens are left alone.
CONSOLE_CALL_RE = re.compile(
    r"(?<![^;{}\n])console\.(?:log|info|debug|warn)\([^()]*\)(\s*;)?"
)
# Not an identifier prefix, property key, assignment target or member access.
DEBUGGER_RE = re.compile(r"(?<![^;{}\n])debugger\b(?!\s*[:=.(\[])(\s*;)?")

CSS_RULE_RE = re.compile(r"([^{}]+)\{([^{}]*)\}")
CSS_EMPTY_RULE_RE = re.compile(r"[^{};]+\{\s*\}")

# Strings and url() tokens are opaque to the tidy pass.
CSS_OPAQUE_RE = re.compile(
    r"""url\(\s*(?:"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'|[^)]*)\s*\)"""
    r"""|"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'""",
    re.IGNORECASE,
)
CSS_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

SVG_COMMENT_RE = re.compile(r"<!--(.*?)-->", re.DOTALL)
SVG_DOCTYPE_RE = re.compile(r"<!DOCTYPE[^>]*>", re.IGNORECASE)
SVG_METADATA_RE = re.compile(r"<metadata\b.*?</metadata>", re.DOTALL | re.IGNORECASE)
WHITESPACE_BETWEEN_TAGS = re.compile(r">\s+<")

LICENSE_KEEP_WORDS = ("copyright", "license", "licence")


class HtmlMinifier(CompressionAdapter):
    category = "html"

    def compress(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        text = decode_text(content, path, self.category)
        try:
            out = htmlmin.minify(text, **pick_options(config, HTML_OPTION_NAMES))
        except Exception as e:
            raise CompressionError(f"htmlmin failed: {e}", path=path, category=self.category) from e
        return out.strip().encode("utf-8")


def _dedupe_selectors(match: re.Match) -> str:
    selector, body = match.group(1), match.group(2)
    if "@" in selector or "(" in selector:
        return match.group(0)
    seen = []
    for s in selector.split(","):
        s = s.strip()
        if s and s not in seen:
            seen.append(s)
    return f"{','.join(seen)}{{{body}}}"


def tidy_css(css: str) -> str:
    """Drop empty rules and repeated selectors from already-minified CSS."""
    tokens: list[str] = []

    def stash(match: re.Match) -> str:
        tokens.append(match.group(0))
        return f"\x00{len(tokens) - 1}\x00"

    css = CSS_OPAQUE_RE.sub(stash, css)
    css = CSS_RULE_RE.sub(_dedupe_selectors, css)
    # Removing an inner empty rule can empty its @media block.
    while True:
        reduced = CSS_EMPTY_RULE_RE.sub("", css)
        if reduced == css:
            break
        css = reduced
    return CSS_PLACEHOLDER_RE.sub(lambda m: tokens[int(m.group(1))], css)


class CssMinifier(CompressionAdapter):
    category = "css"

    def compress(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        level = int(config.get("level", 2))
        if level <= 0:
            return content

        text = decode_text(content, path, self.category)
        try:
            out = rcssmin.cssmin(text, keep_bang_comments=bool(config.get("keep_bang_comments", False)))
        except Exception as e:
            raise CompressionError(f"rcssmin failed: {e}", path=path, category=self.category) from e

        if level >= 2:
            out = tidy_css(out)
        return out.encode("utf-8")


def _drop_statement(match: re.Match) -> str:
    # After a newline the call can be the whole body of a braceless if/else/loop.
    start = match.start()
    if start and match.string[start - 1] == "\n":
        return "void 0" + (match.group(1) or "")
    return ""


def strip_debug_statements(script: str, drop_console: bool, drop_debugger: bool) -> str:
    if drop_console:
        script = CONSOLE_CALL_RE.sub(_drop_statement, script)
    if drop_debugger:
        script = DEBUGGER_RE.sub(_drop_statement, script)
    return script


class JsMinifier(CompressionAdapter):
    category = "js"

    def compress(self, content: bytes, config: Mapping[str, Any], path: PurePosixPath) -> bytes:
        text = decode_text(content, path, self.category)
        try:
            out = rjsmin.jsmin(text, keep_bang_comments=bool(config.get("keep_bang_comments", False)))
        except Exception as e:
            raise CompressionError(f"rjsmin failed: {e}", path=path, category=self.category) from e

        out = strip_debug_statements(
            out,
            drop_console=bool(config.get("drop_console", False)),
            drop_debugger=bool(config.get("drop_debugger", False)),
        )
        return out.strip().encode("utf-8")


def optimize_svg(text: str, keep_license_comments: bool = True) -> str:
    """
    Lightweight SVG cleanup: comments, doctype, <metadata> and the
    whitespace between tags. viewBox, IDs and styles are untouched.
    """
    def repl_comment(match: re.Match) -> str:
        body = match.group(1).lower()
        if keep_license_comments and any(word in body for word in LICENSE_KEEP_WORDS):
            return match.group(0)
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = SVG_COMMENT_RE.sub(repl_comment, text)
    text = SVG_DOCTYPE_RE.sub("", text)
    text = SVG_METADATA_RE.sub("", text)
    text = WHITESPACE_BETWEEN_TAGS.sub("><", text)
    return text.strip()
