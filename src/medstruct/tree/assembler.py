"""Document tree assembly from labeled clusters.

Single forward pass over the clusters with four pieces of state: the
current division, the open paragraph, the open list and the previous
cluster's label. Dispatch per label:

  title              heading leaf (level 0) under the current division
  section/subsection new division + numbered heading (level 1/2)
  item               list item; a new list unless the previous cluster
                     was an item or a marker
  paragraph          new paragraph, or continuation after a marker or a
                     figure/table break
  figure/table marker inline reference, resolved against the catalog
  figure/table       break only; the open paragraph stays open
  patient/medic      typed note under the current division
  other              typed note under the current division

Clusters with labels outside the taxonomy are dropped. Divisions left
without children are pruned at the end.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import assert_never

from medstruct.config import StructuringContext
from medstruct.document_types import CatalogEntry
from medstruct.errors import TaxonomyViolationError
from medstruct.labels import FLOAT_LABELS, HEADING_LEVELS, MARKER_LABELS, Label
from medstruct.references import resolve_marker
from medstruct.section_numbering import extract_section_number
from medstruct.text_utils import ends_with_space
from medstruct.tokens import Cluster, union_boxes
from medstruct.tree.nodes import (
    DocumentNode,
    NodeKind,
    body,
    division,
    heading,
    list_item,
    list_node,
    note,
    paragraph,
)
from medstruct.tree.sentences import segment_paragraph

log = logging.getLogger(__name__)

TITLE_LEVEL = 0

_NOTE_TYPES: dict[Label, str] = {
    Label.PATIENT: "patient",
    Label.MEDIC: "medic",
    Label.OTHER: "other",
}


@dataclass(slots=True)
class _Assembler:
    """Mutable state of one assembly pass."""

    context: StructuringContext
    root: DocumentNode = field(default_factory=body)
    current_division: DocumentNode = field(default_factory=division)
    current_paragraph: DocumentNode | None = None
    current_list: DocumentNode | None = None
    last_label: Label | None = None
    dropped: int = 0

    def __post_init__(self) -> None:
        self.root.append(self.current_division)

    # -- paragraph bookkeeping ------------------------------------------

    def _segment(self, par: DocumentNode) -> None:
        cfg = self.context.config
        if not cfg.segment_sentences or self.context.sentence_detector is None:
            return
        segment_paragraph(
            par,
            self.context.sentence_detector,
            cfg.language,
            with_coordinates=cfg.wants_coordinates("s"),
        )

    def close_paragraph(self) -> None:
        if self.current_paragraph is not None:
            self._segment(self.current_paragraph)
            self.current_paragraph = None

    def _is_new_paragraph(self) -> bool:
        return (
            self.last_label not in MARKER_LABELS
            and self.last_label not in FLOAT_LABELS
        ) or self.current_paragraph is None

    @staticmethod
    def _append_text(par: DocumentNode, text: str) -> None:
        if not text:
            return
        # Text right after a reference is glued to it; a separating space
        # comes from the marker's own trailing whitespace.
        last = par.children[-1] if par.children else None
        if (
            last is not None
            and last.kind is NodeKind.TEXT
            and not ends_with_space(last.text)
            and not text[0].isspace()
        ):
            par.add_text(" ")
        par.add_text(text)

    # -- per-label handlers -----------------------------------------------

    def on_title(self, cluster: Cluster) -> None:
        node = heading(cluster.text, TITLE_LEVEL)
        node.tokens = list(cluster.tokens)
        if self.context.config.wants_coordinates("head"):
            node.boxes = union_boxes(cluster.tokens)
        self.current_division.append(node)

    def on_heading(self, cluster: Cluster, level: int) -> None:
        self.close_paragraph()
        self.current_list = None
        self.current_division = self.root.append(division())

        text = cluster.text
        numbering = extract_section_number(text)
        if numbering is not None:
            node = heading(numbering.heading, level, numbering.number)
        else:
            node = heading(text, level)
        node.tokens = list(cluster.tokens)
        if self.context.config.wants_coordinates("head"):
            node.boxes = union_boxes(cluster.tokens)
        self.current_division.append(node)

    def on_item(self, cluster: Cluster) -> None:
        if (
            self.last_label not in MARKER_LABELS and self.last_label is not Label.ITEM
        ) or self.current_list is None:
            self.current_list = self.current_division.append(list_node())
        item = list_item(cluster.plain_text)
        item.tokens = list(cluster.tokens)
        self.current_list.append(item)

    def on_paragraph(self, cluster: Cluster) -> None:
        par = self.current_paragraph
        if par is None or self._is_new_paragraph():
            self.close_paragraph()
            par = self.current_division.append(paragraph())
            self.current_paragraph = par
        else:
            # Continuation after a marker or a figure/table break.
            par.open_fragment = False
        self._append_text(par, cluster.text)
        par.tokens.extend(cluster.tokens)

    def _catalog_for(self, label: Label) -> Sequence[CatalogEntry]:
        if label is Label.FIGURE_MARKER:
            return self.context.figures
        if label is Label.TABLE_MARKER:
            return self.context.tables
        raise TaxonomyViolationError(label)

    def on_marker(self, cluster: Cluster, label: Label) -> None:
        catalog = self._catalog_for(label)
        nodes = resolve_marker(
            cluster,
            label,
            catalog,
            with_coordinates=self.context.config.wants_coordinates("ref"),
        )
        if not nodes:
            return
        if self.current_paragraph is not None:
            par = self.current_paragraph
            if par.children and not ends_with_space(par.children[-1].text):
                par.add_text(" ")
            for node in nodes:
                par.append(node)
        else:
            for node in nodes:
                if node.kind is NodeKind.REF:
                    self.current_division.append(node)

    def on_float(self) -> None:
        if self.current_paragraph is not None:
            self.current_paragraph.open_fragment = True

    def on_note(self, cluster: Cluster, label: Label) -> None:
        node = note(cluster.text, _NOTE_TYPES[label])
        node.tokens = list(cluster.tokens)
        self.current_division.append(node)

    # -- driver -------------------------------------------------------------

    def feed(self, cluster: Cluster) -> None:
        label = cluster.kind
        if label is None:
            log.warning("Dropping cluster with unsupported label %r", cluster.label)
            self.dropped += 1
            self.last_label = None
            return
        match label:
            case Label.TITLE:
                self.on_title(cluster)
            case Label.SECTION | Label.SUBSECTION:
                self.on_heading(cluster, HEADING_LEVELS[label])
            case Label.ITEM:
                self.on_item(cluster)
            case Label.PARAGRAPH:
                self.on_paragraph(cluster)
            case Label.FIGURE_MARKER | Label.TABLE_MARKER:
                self.on_marker(cluster, label)
            case Label.FIGURE | Label.TABLE:
                self.on_float()
            case Label.PATIENT | Label.MEDIC | Label.OTHER:
                self.on_note(cluster, label)
            case _:
                assert_never(label)
        self.last_label = label

    def finish(self) -> DocumentNode:
        self.close_paragraph()
        prune_empty_divisions(self.root)
        return self.root


def prune_empty_divisions(root: DocumentNode) -> int:
    """Remove every division without children. Returns the number removed."""
    empty = [div for div in root.iter(NodeKind.DIVISION) if not div.children]
    for div in empty:
        div.detach()
    return len(empty)


def assemble_tree(clusters: Sequence[Cluster], context: StructuringContext) -> DocumentNode:
    """Build the document body from ordered clusters.

    Raises:
        TaxonomyViolationError: a non-marker label reached marker dispatch.
    """
    assembler = _Assembler(context)
    for cluster in clusters:
        assembler.feed(cluster)
    root = assembler.finish()
    if assembler.dropped:
        log.info("Dropped %d cluster(s) outside the label taxonomy", assembler.dropped)
    return root
