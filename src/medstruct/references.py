"""Inline figure/table reference resolution.

A marker cluster's text is matched against the figure or table catalog:
an entry matches when its cleaned label is contained, case-insensitively,
in the marker text. Catalog order decides; the first match wins. An
unmatched marker still yields a reference node, without target.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from medstruct.document_types import CatalogEntry
from medstruct.errors import TaxonomyViolationError
from medstruct.labels import Label
from medstruct.text_utils import clean_field, ends_with_space
from medstruct.tokens import Cluster, union_boxes
from medstruct.tree.nodes import DocumentNode, RefType, reference, text_run

log = logging.getLogger(__name__)

_REF_TYPES: dict[Label, RefType] = {
    Label.FIGURE_MARKER: RefType.FIGURE,
    Label.TABLE_MARKER: RefType.TABLE,
}

TARGET_PREFIXES: dict[str, str] = {
    RefType.FIGURE.value: "#fig_",
    RefType.TABLE.value: "#tab_",
}


def ref_type_for(label: Label | str) -> RefType:
    """Map a marker label to its reference type.

    Raises:
        TaxonomyViolationError: ``label`` is not a marker label.
    """
    ref_type = _REF_TYPES.get(label)  # type: ignore[call-overload]
    if ref_type is None:
        raise TaxonomyViolationError(str(label))
    return ref_type


def match_catalog_entry(text: str, catalog: Sequence[CatalogEntry]) -> CatalogEntry | None:
    """Return the first catalog entry whose label occurs in ``text``."""
    text_low = text.lower()
    for entry in catalog:
        label = clean_field(entry.label)
        if label and label.lower() in text_low:
            return entry
    return None


def resolve_marker(
    cluster: Cluster,
    label: Label,
    catalog: Sequence[CatalogEntry],
    *,
    with_coordinates: bool = False,
) -> list[DocumentNode]:
    """Build the reference node(s) for one marker cluster.

    Returns an empty list when the marker text is blank. When the raw
    marker text ended with whitespace, a single-space text run follows
    the reference.
    """
    ref_type = ref_type_for(label)
    raw = cluster.marker_text
    text = raw.strip()
    if not text:
        return []
    entry = match_catalog_entry(text, catalog)
    if entry is None:
        log.debug("No %s entry matches marker %r", ref_type.value, text)
    node = reference(text, ref_type, target=entry.id if entry else None)
    node.tokens = list(cluster.tokens)
    if with_coordinates:
        node.boxes = union_boxes(cluster.tokens)
    nodes = [node]
    if ends_with_space(raw):
        nodes.append(text_run(" "))
    return nodes
