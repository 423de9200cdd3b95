"""Per-invocation configuration and collaborator context.

Everything the core needs beyond the token stream is passed in through a
:class:`StructuringContext` built by the caller; the core keeps no
module-level mutable state, so independent documents can be processed
in parallel.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any
from uuid import uuid4

from medstruct.document_types import CatalogEntry
from medstruct.email_assigner import NameVariantGenerator, generate_email_variants
from medstruct.errors import MissingResourceError
from medstruct.notes import MIN_NOTE_LENGTH
from medstruct.tree.sentences import PunktSentenceDetector, SentenceDetector

COORDINATE_ELEMENTS: frozenset[str] = frozenset({"head", "s", "ref", "note"})


@dataclass(frozen=True, slots=True)
class StructuringConfig:
    """Output options for one structuring run."""

    segment_sentences: bool = False
    generate_ids: bool = False
    coordinate_elements: frozenset[str] = frozenset()
    language: str = "fr"
    min_note_length: int = MIN_NOTE_LENGTH

    def __post_init__(self) -> None:
        unknown = set(self.coordinate_elements) - COORDINATE_ELEMENTS
        if unknown:
            raise ValueError(
                f"Unknown coordinate elements {sorted(unknown)}; "
                f"expected a subset of {sorted(COORDINATE_ELEMENTS)}"
            )
        if self.min_note_length < 0:
            raise ValueError(f"min_note_length must be non-negative, got {self.min_note_length}")

    def wants_coordinates(self, element: str) -> bool:
        return element in self.coordinate_elements

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StructuringConfig:
        """Build a config from a JSON-decoded mapping. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        kwargs = dict(data)
        if "coordinate_elements" in kwargs:
            kwargs["coordinate_elements"] = frozenset(kwargs["coordinate_elements"])
        return cls(**kwargs)


def default_id_factory() -> str:
    """Short random identifier, e.g. ``_3fa2b1c``."""
    return "_" + uuid4().hex[:7]


@dataclass(frozen=True, slots=True)
class StructuringContext:
    """Config plus the external collaborators for one document."""

    config: StructuringConfig = field(default_factory=StructuringConfig)
    figures: tuple[CatalogEntry, ...] = ()
    tables: tuple[CatalogEntry, ...] = ()
    sentence_detector: SentenceDetector | None = None
    variant_generator: NameVariantGenerator = generate_email_variants
    id_factory: Callable[[], str] = default_id_factory

    def __post_init__(self) -> None:
        if self.config.segment_sentences and self.sentence_detector is None:
            raise MissingResourceError(
                "Sentence segmentation requested but no sentence detector was supplied"
            )

    @classmethod
    def create(
        cls,
        config: StructuringConfig | None = None,
        *,
        figures: Iterable[CatalogEntry] = (),
        tables: Iterable[CatalogEntry] = (),
        id_factory: Callable[[], str] = default_id_factory,
    ) -> StructuringContext:
        """Context wired with the default Punkt sentence detector."""
        return cls(
            config=config or StructuringConfig(),
            figures=tuple(figures),
            tables=tuple(tables),
            sentence_detector=PunktSentenceDetector(),
            id_factory=id_factory,
        )
