"""Value types shared across the structuring pipeline.

Type inventory:
  OffsetPosition : half-open character span into a flattened string
  CatalogEntry   : figure/table the body text may refer to
  Person         : named individual an email may be assigned to
  NotePlace      : placement of a running note on the page
  NoteBlock      : one raw running-note block (tokens + placement)
  NoteRecord     : deduplicated, normalized running note

All types are created per document and never shared across documents.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from medstruct.tokens import LabeledToken


@dataclass(frozen=True, slots=True, order=True)
class OffsetPosition:
    """Half-open span ``[start, end)`` into a flattened string."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start must be non-negative, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")

    def contains(self, pos: int) -> bool:
        return self.start <= pos < self.end


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A figure or table of the document, referenced by inline markers."""

    id: str
    label: str | None = None


@dataclass(slots=True)
class Person:
    """A patient or medic. ``email`` is assigned at most once."""

    first_name: str | None
    last_name: str | None
    email: str | None = None
    role: str = "medic"

    def assign_email(self, email: str) -> None:
        if self.email is not None:
            raise ValueError(
                f"{self.first_name} {self.last_name} already has email {self.email!r}"
            )
        self.email = email

    @property
    def has_email(self) -> bool:
        return self.email is not None


class NotePlace(StrEnum):
    HEAD = "head"
    FOOT = "foot"
    LEFT = "left"
    RIGHT = "right"
    MARGIN = "margin"


@dataclass(frozen=True, slots=True)
class NoteBlock:
    """Raw running-note block as segmented upstream."""

    tokens: tuple[LabeledToken, ...]
    place: NotePlace = NotePlace.FOOT

    @property
    def raw_text(self) -> str:
        return "".join(t.text for t in self.tokens)


@dataclass(frozen=True, slots=True)
class NoteRecord:
    """Deduplicated running note ready for serialization."""

    text: str
    place: NotePlace
    number: int | None = None
    tokens: tuple[LabeledToken, ...] = field(default=(), repr=False)
