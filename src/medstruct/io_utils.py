"""JSON I/O for labeled documents and structuring results.

Input document layout (one JSON object)::

    {
      "tokens":  [{"text": "Fièvre", "label": "<paragraph>",
                   "box": {"page": 1, "x": 10.0, "y": 20.0, "w": 30.0, "h": 9.5}}],
      "figures": [{"id": "1", "label": "Figure 1"}],
      "tables":  [{"id": "1", "label": "Tableau 1"}],
      "notes":   [{"place": "foot", "tokens": [{"text": "1"}, {"text": " Hôpital"}]}],
      "persons": [{"first_name": "Jean", "last_name": "Dupont", "role": "medic"}],
      "emails":  ["j.dupont@hopital.fr"]
    }

Only ``tokens`` is required. A note may give ``text`` instead of
``tokens``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from medstruct.document_types import CatalogEntry, NoteBlock, NotePlace, Person
from medstruct.errors import MissingResourceError
from medstruct.tokens import BoundingBox, LabeledToken


def load_json(path: Path) -> Any:
    """Load JSON from a file. A missing file is a missing resource."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise MissingResourceError(f"Input not found: {path}") from exc
    return orjson.loads(raw)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def save_text(text: str, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


# ---------------------------------------------------------------------------
# Record decoding
# ---------------------------------------------------------------------------

def box_from_dict(data: dict[str, Any] | None) -> BoundingBox | None:
    if not data:
        return None
    return BoundingBox(
        page=int(data["page"]),
        x=float(data["x"]),
        y=float(data["y"]),
        width=float(data.get("w", data.get("width", 0.0))),
        height=float(data.get("h", data.get("height", 0.0))),
    )


def tokens_from_records(
    records: list[dict[str, Any]], *, default_label: str = "",
) -> tuple[LabeledToken, ...]:
    return tuple(
        LabeledToken(
            text=rec.get("text") or "",
            label=rec.get("label") or default_label,
            index=int(rec.get("index", i)),
            box=box_from_dict(rec.get("box")),
        )
        for i, rec in enumerate(records)
    )


def catalog_from_records(records: list[dict[str, Any]] | None) -> tuple[CatalogEntry, ...]:
    if not records:
        return ()
    return tuple(CatalogEntry(id=str(rec["id"]), label=rec.get("label")) for rec in records)


def note_block_from_dict(data: dict[str, Any]) -> NoteBlock:
    place = NotePlace(data.get("place", NotePlace.FOOT.value))
    if "tokens" in data:
        tokens = tokens_from_records(data["tokens"])
    else:
        tokens = (LabeledToken(text=data.get("text") or "", label="", index=0),)
    return NoteBlock(tokens=tokens, place=place)


def person_from_dict(data: dict[str, Any]) -> Person:
    return Person(
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        email=data.get("email"),
        role=data.get("role", "medic"),
    )


@dataclass(slots=True)
class DocumentInput:
    """Decoded contents of one input document file."""

    tokens: tuple[LabeledToken, ...]
    figures: tuple[CatalogEntry, ...] = ()
    tables: tuple[CatalogEntry, ...] = ()
    note_blocks: list[NoteBlock] = field(default_factory=list)
    persons: list[Person] | None = None
    emails: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentInput:
        if "tokens" not in data:
            raise MissingResourceError("Input document has no 'tokens' array")
        persons = data.get("persons")
        return cls(
            tokens=tokens_from_records(data["tokens"]),
            figures=catalog_from_records(data.get("figures")),
            tables=catalog_from_records(data.get("tables")),
            note_blocks=[note_block_from_dict(n) for n in data.get("notes") or []],
            persons=[person_from_dict(p) for p in persons] if persons is not None else None,
            emails=list(data.get("emails") or []),
        )


def load_document_input(path: Path) -> DocumentInput:
    return DocumentInput.from_dict(load_json(path))
