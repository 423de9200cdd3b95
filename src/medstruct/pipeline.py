"""Document structuring pipeline.

The single entry point is :func:`structure_document`, which takes the
labeled token stream of one document and returns a
:class:`StructuredDocument`:

    tokens -> clusters -> tree (refs, notes) -> sentences -> reconnection

:func:`process_document` runs the same pipeline and serializes the
result to TEI XML. Everything is created per call; independent
documents can be processed concurrently with separate contexts.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from medstruct.config import StructuringContext
from medstruct.document_types import NoteBlock, NoteRecord, Person
from medstruct.email_assigner import assign_emails
from medstruct.notes import deduplicate_notes
from medstruct.serializer import document_to_dict, serialize_tei
from medstruct.tokens import LabeledToken, build_clusters
from medstruct.tree.assembler import assemble_tree
from medstruct.tree.nodes import DocumentNode, NodeKind
from medstruct.tree.reconnect import reconnect_paragraphs

log = logging.getLogger(__name__)


@dataclass(slots=True)
class StructuredDocument:
    """Result of structuring a single document."""

    body: DocumentNode
    notes: list[NoteRecord] = field(default_factory=list)
    persons: list[Person] = field(default_factory=list)

    def divisions(self) -> list[DocumentNode]:
        return [c for c in self.body.children if c.kind is NodeKind.DIVISION]

    def to_dict(self) -> dict[str, Any]:
        return document_to_dict(self.body, self.notes, self.persons)


def structure_document(
    tokens: Iterable[LabeledToken],
    context: StructuringContext,
    *,
    note_blocks: Iterable[NoteBlock] = (),
    persons: Sequence[Person] | None = None,
    emails: Sequence[str] = (),
) -> StructuredDocument:
    """Structure one document's labeled tokens into a document tree.

    Args:
        tokens: Body tokens in reading order, labeled upstream.
        context: Config and collaborators for this document.
        note_blocks: Running header/footer blocks, in page order.
        persons: Named persons found in the document; receive emails in place.
        emails: Sanitized emails found in the document.

    Raises:
        TaxonomyViolationError: a non-marker label reached marker dispatch.
    """
    clusters = build_clusters(tokens)
    body = assemble_tree(clusters, context)
    reconnect_paragraphs(body)

    notes = deduplicate_notes(note_blocks, min_length=context.config.min_note_length)

    person_list = list(persons) if persons is not None else []
    if persons is not None:
        assign_emails(person_list, emails, context.variant_generator)

    log.info(
        "Structured document: %d cluster(s), %d division(s), %d note(s)",
        len(clusters),
        sum(1 for _ in body.iter(NodeKind.DIVISION)),
        len(notes),
    )
    return StructuredDocument(body=body, notes=notes, persons=person_list)


def process_document(
    tokens: Iterable[LabeledToken],
    context: StructuringContext,
    *,
    note_blocks: Iterable[NoteBlock] = (),
    persons: Sequence[Person] | None = None,
    emails: Sequence[str] = (),
) -> str:
    """Structure one document and serialize it to TEI XML."""
    doc = structure_document(
        tokens, context, note_blocks=note_blocks, persons=persons, emails=emails,
    )
    return serialize_tei(
        doc.body,
        notes=doc.notes,
        persons=doc.persons,
        figures=context.figures,
        tables=context.tables,
        config=context.config,
        id_factory=context.id_factory,
    )
