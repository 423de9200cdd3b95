"""Closed label taxonomy emitted by the full-text sequence labeler.

Labels arrive as the tagger's bracketed identifiers (``<paragraph>``).
Bare spellings (``paragraph``) and ``-``/``_`` variants of the compound
names (``figure-marker``, ``sub_section``) are accepted by
:func:`parse_label`; anything else is outside the taxonomy and the
caller decides whether to drop it.
"""
from __future__ import annotations

from enum import StrEnum


class Label(StrEnum):
    TITLE = "<title>"
    SECTION = "<section>"
    SUBSECTION = "<subsection>"
    ITEM = "<item>"
    PARAGRAPH = "<paragraph>"
    FIGURE = "<figure>"
    TABLE = "<table>"
    FIGURE_MARKER = "<figure_marker>"
    TABLE_MARKER = "<table_marker>"
    PATIENT = "<patient>"
    MEDIC = "<medic>"
    OTHER = "<other>"


MARKER_LABELS: frozenset[Label] = frozenset({Label.FIGURE_MARKER, Label.TABLE_MARKER})
FLOAT_LABELS: frozenset[Label] = frozenset({Label.FIGURE, Label.TABLE})
HEADING_LEVELS: dict[Label, int] = {Label.SECTION: 1, Label.SUBSECTION: 2}

_ALIASES: dict[str, Label] = {
    "sub_section": Label.SUBSECTION,
    "other_note": Label.OTHER,
    "note": Label.OTHER,
    "list_item": Label.ITEM,
    "figure_ref": Label.FIGURE_MARKER,
    "table_ref": Label.TABLE_MARKER,
}


def _canonical_key(raw: str) -> str:
    key = raw.strip().lower()
    if key.startswith("<") and key.endswith(">"):
        key = key[1:-1]
    return key.replace("-", "_").replace(" ", "_")


_BY_KEY: dict[str, Label] = {
    _canonical_key(label.value): label for label in Label
} | _ALIASES


def parse_label(raw: str | None) -> Label | None:
    """Map a raw tagger label to the taxonomy, or None if it is outside."""
    if not raw:
        return None
    return _BY_KEY.get(_canonical_key(raw))


def is_marker(label: Label | None) -> bool:
    return label in MARKER_LABELS
