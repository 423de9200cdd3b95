"""Mutable document tree built by the assembler.

One node class carries every variant; ``kind`` is the tag. Variant
payloads:
  HEADING   : ``level`` (0 title, 1 section, 2 sub-section), ``numbering``
  REF       : ``subtype`` (figure/table), ``target`` (catalog id or None)
  NOTE      : ``subtype`` (other/patient/medic)
  TEXT      : ``text`` only
Leaves (heading, list item, note, ref, text) hold their text in ``text``;
containers (body, division, paragraph, sentence, list) hold children.

A node has at most one parent. :meth:`DocumentNode.append` transfers
ownership: a child that already has a parent is detached first.
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from medstruct.tokens import BoundingBox, LabeledToken


class NodeKind(StrEnum):
    BODY = "body"
    DIVISION = "div"
    HEADING = "head"
    PARAGRAPH = "p"
    SENTENCE = "s"
    LIST = "list"
    LIST_ITEM = "item"
    REF = "ref"
    NOTE = "note"
    TEXT = "text"


class RefType(StrEnum):
    FIGURE = "figure"
    TABLE = "table"


_CONTAINERS = frozenset({
    NodeKind.BODY, NodeKind.DIVISION, NodeKind.PARAGRAPH,
    NodeKind.SENTENCE, NodeKind.LIST,
})


@dataclass(eq=False, slots=True)
class DocumentNode:
    kind: NodeKind
    text: str = ""
    level: int | None = None
    numbering: str | None = None
    subtype: str | None = None
    target: str | None = None
    children: list[DocumentNode] = field(default_factory=list, repr=False)
    parent: DocumentNode | None = field(default=None, repr=False)
    tokens: list[LabeledToken] = field(default_factory=list, repr=False)
    boxes: list[BoundingBox] = field(default_factory=list, repr=False)
    # Set when a figure/table interrupted this paragraph.
    open_fragment: bool = False

    @property
    def is_container(self) -> bool:
        return self.kind in _CONTAINERS

    def append(self, child: DocumentNode) -> DocumentNode:
        if not self.is_container:
            raise ValueError(f"{self.kind} node cannot hold children")
        if child is self:
            raise ValueError("A node cannot be its own child")
        if child.parent is not None:
            child.detach()
        child.parent = self
        self.children.append(child)
        return child

    def detach(self) -> DocumentNode:
        if self.parent is not None:
            siblings = self.parent.children
            for i, sibling in enumerate(siblings):
                if sibling is self:
                    del siblings[i]
                    break
            self.parent = None
        return self

    def clear(self) -> list[DocumentNode]:
        """Detach and return every child."""
        removed = list(self.children)
        for child in removed:
            child.parent = None
        self.children.clear()
        return removed

    def add_text(self, text: str) -> None:
        """Append text, merging into a trailing text run."""
        if not text:
            return
        if self.children and self.children[-1].kind is NodeKind.TEXT:
            self.children[-1].text += text
        else:
            self.append(text_run(text))

    def text_content(self) -> str:
        if not self.is_container:
            return self.text
        return "".join(child.text_content() for child in self.children)

    def iter(self, kind: NodeKind | None = None) -> Iterator[DocumentNode]:
        """Depth-first pre-order walk, optionally filtered by kind."""
        if kind is None or self.kind is kind:
            yield self
        for child in self.children:
            yield from child.iter(kind)

    def next_sibling(self) -> DocumentNode | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        for i, sibling in enumerate(siblings):
            if sibling is self:
                return siblings[i + 1] if i + 1 < len(siblings) else None
        return None


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def body() -> DocumentNode:
    return DocumentNode(NodeKind.BODY)


def division() -> DocumentNode:
    return DocumentNode(NodeKind.DIVISION)


def heading(text: str, level: int, numbering: str | None = None) -> DocumentNode:
    return DocumentNode(NodeKind.HEADING, text=text, level=level, numbering=numbering)


def paragraph() -> DocumentNode:
    return DocumentNode(NodeKind.PARAGRAPH)


def sentence() -> DocumentNode:
    return DocumentNode(NodeKind.SENTENCE)


def list_node() -> DocumentNode:
    return DocumentNode(NodeKind.LIST)


def list_item(text: str) -> DocumentNode:
    return DocumentNode(NodeKind.LIST_ITEM, text=text)


def note(text: str, note_type: str) -> DocumentNode:
    return DocumentNode(NodeKind.NOTE, text=text, subtype=note_type)


def reference(text: str, ref_type: RefType, target: str | None = None) -> DocumentNode:
    return DocumentNode(NodeKind.REF, text=text, subtype=ref_type.value, target=target)


def text_run(text: str) -> DocumentNode:
    return DocumentNode(NodeKind.TEXT, text=text)
