"""Reconnection of paragraphs cut by a figure or table.

A paragraph interrupted by a figure/table and never continued stays
flagged as an open fragment. It is merged with the next paragraph of
the same division (notes in between are skipped) when that paragraph's
first visible characters are an upper-case letter directly followed by a
lower-case letter. Any other start keeps the break.
"""
from __future__ import annotations

import logging

from medstruct.tree.nodes import DocumentNode, NodeKind

log = logging.getLogger(__name__)


def _first_text(node: DocumentNode) -> str:
    """Text of the first text-bearing descendant with visible characters."""
    if not node.is_container:
        return node.text if node.text.strip() else ""
    for child in node.children:
        found = _first_text(child)
        if found:
            return found
    return ""


def starts_capitalized_word(node: DocumentNode) -> bool:
    text = _first_text(node).lstrip()
    return len(text) >= 2 and text[0].isupper() and text[1].islower()


def _following_paragraph(fragment: DocumentNode) -> DocumentNode | None:
    sibling = fragment.next_sibling()
    while sibling is not None and sibling.kind is NodeKind.NOTE:
        sibling = sibling.next_sibling()
    if sibling is not None and sibling.kind is NodeKind.PARAGRAPH:
        return sibling
    return None


def _merge(fragment: DocumentNode, follower: DocumentNode) -> None:
    holds_sentences = any(c.kind is NodeKind.SENTENCE for c in fragment.children)
    if not holds_sentences and fragment.children and not fragment.text_content().endswith(" "):
        fragment.add_text(" ")
    for child in list(follower.children):
        fragment.append(child)
    fragment.tokens.extend(follower.tokens)
    fragment.open_fragment = follower.open_fragment
    follower.detach()


def reconnect_paragraphs(root: DocumentNode) -> int:
    """Merge open paragraph fragments in place. Returns the number of merges."""
    merges = 0
    for fragment in list(root.iter(NodeKind.PARAGRAPH)):
        if fragment.parent is None:
            continue
        while fragment.open_fragment:
            follower = _following_paragraph(fragment)
            if follower is None or not starts_capitalized_word(follower):
                fragment.open_fragment = False
                break
            _merge(fragment, follower)
            merges += 1
    if merges:
        log.debug("Reconnected %d paragraph fragment(s)", merges)
    return merges
