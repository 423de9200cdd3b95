"""Deterministic text normalization for cluster, marker and note text.

Transforms, in order:
1. Dehyphenate words broken across lines (``"treat-\\nment"`` -> ``"treatment"``).
2. Convert newlines, tabs and non-breaking spaces to plain spaces.
3. Collapse runs of spaces and trim.
"""
from __future__ import annotations

import re

_HYPHEN_BREAK_RE = re.compile(r"(\w)[-\u00ad\u2010]\s*\n\s*(\w)")
_SOFT_HYPHEN_RE = re.compile("\u00ad")
_WS_RE = re.compile(r"[ \t\r\n\u00a0]+")
_EDGE_PUNCT = " \t\n.,;:()[]{}"


def dehyphenize(text: str) -> str:
    """Join words split by an end-of-line hyphen."""
    if not text:
        return ""
    text = _HYPHEN_BREAK_RE.sub(r"\1\2", text)
    return _SOFT_HYPHEN_RE.sub("", text)


def normalize_text(text: str) -> str:
    """Collapse whitespace (newlines included) and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def normalize_dehyphenize_text(text: str) -> str:
    return normalize_text(dehyphenize(text))


def clean_field(text: str | None) -> str:
    """Trim whitespace and surrounding punctuation from a catalog field."""
    if not text:
        return ""
    return normalize_text(text).strip(_EDGE_PUNCT)


def ends_with_space(text: str) -> bool:
    return bool(text) and text[-1].isspace()
