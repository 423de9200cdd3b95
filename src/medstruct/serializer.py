"""TEI XML and plain-dict rendering of the document tree.

Element mapping:
  division  -> <div>
  heading   -> <head level="1" n="1."> (title: <head type="title">)
  paragraph -> <p>, sentence -> <s>
  list/item -> <list>/<item>
  note      -> <note type="other|patient|medic">
  reference -> <ref type="figure|table" target="#fig_3">
Catalog entries follow the divisions as <figure xml:id="fig_3"> (tables:
<figure type="table" xml:id="tab_1">), then running notes as
<note place="foot" n="2">.

Identifiers (``xml:id``) are emitted on div, head, p, s and note elements
when the config asks for them; ``coords`` attributes on head, s, ref and
note elements listed in ``coordinate_elements``.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from lxml import etree

from medstruct.config import StructuringConfig, default_id_factory
from medstruct.document_types import CatalogEntry, NoteRecord, Person
from medstruct.references import TARGET_PREFIXES
from medstruct.tokens import coords_attribute, union_boxes
from medstruct.tree.nodes import DocumentNode, NodeKind, RefType

TEI_NS = "http://www.tei-c.org/ns/1.0"
XML_ID = "{http://www.w3.org/XML/1998/namespace}id"

_ID_ELEMENTS = frozenset({"div", "head", "p", "s", "note"})


def _tei(tag: str) -> str:
    return f"{{{TEI_NS}}}{tag}"


def _append_text(parent: etree._Element, text: str) -> None:
    if not text:
        return
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


class _TeiWriter:
    """Walks the tree and builds lxml elements."""

    def __init__(self, config: StructuringConfig, id_factory: Callable[[], str]) -> None:
        self.config = config
        self.id_factory = id_factory

    def _element(self, parent: etree._Element, tag: str) -> etree._Element:
        el = etree.SubElement(parent, _tei(tag))
        if self.config.generate_ids and tag in _ID_ELEMENTS:
            el.set(XML_ID, self.id_factory())
        return el

    def _coords(self, el: etree._Element, tag: str, node: DocumentNode) -> None:
        if self.config.wants_coordinates(tag) and node.boxes:
            el.set("coords", coords_attribute(node.boxes))

    def write(self, parent: etree._Element, node: DocumentNode) -> None:
        match node.kind:
            case NodeKind.DIVISION:
                el = self._element(parent, "div")
                for child in node.children:
                    self.write(el, child)
            case NodeKind.HEADING:
                el = self._element(parent, "head")
                if node.level:
                    el.set("level", str(node.level))
                else:
                    el.set("type", "title")
                if node.numbering:
                    el.set("n", node.numbering)
                self._coords(el, "head", node)
                el.text = node.text
            case NodeKind.PARAGRAPH | NodeKind.SENTENCE:
                tag = "p" if node.kind is NodeKind.PARAGRAPH else "s"
                el = self._element(parent, tag)
                if tag == "s":
                    self._coords(el, "s", node)
                for child in node.children:
                    self.write(el, child)
            case NodeKind.TEXT:
                _append_text(parent, node.text)
            case NodeKind.REF:
                el = self._element(parent, "ref")
                el.set("type", node.subtype or "")
                self._coords(el, "ref", node)
                if node.target is not None:
                    el.set("target", TARGET_PREFIXES.get(node.subtype or "", "#") + node.target)
                el.text = node.text
            case NodeKind.LIST:
                el = self._element(parent, "list")
                for child in node.children:
                    self.write(el, child)
            case NodeKind.LIST_ITEM:
                el = self._element(parent, "item")
                el.text = node.text
            case NodeKind.NOTE:
                el = self._element(parent, "note")
                el.set("type", node.subtype or "other")
                el.text = node.text
            case NodeKind.BODY:
                for child in node.children:
                    self.write(parent, child)

    def write_note(self, parent: etree._Element, record: NoteRecord) -> None:
        el = self._element(parent, "note")
        el.set("place", record.place.value)
        if record.number is not None:
            el.set("n", str(record.number))
        if self.config.wants_coordinates("note"):
            boxes = union_boxes(record.tokens)
            if boxes:
                el.set("coords", coords_attribute(boxes))
        el.text = record.text


def float_id(ref_type: RefType, entry_id: str) -> str:
    """``xml:id`` of a catalog entry; references target ``#`` + this id."""
    return TARGET_PREFIXES[ref_type.value].lstrip("#") + entry_id


def _write_floats(
    parent: etree._Element,
    figures: Sequence[CatalogEntry],
    tables: Sequence[CatalogEntry],
) -> None:
    for ref_type, entries in ((RefType.FIGURE, figures), (RefType.TABLE, tables)):
        for entry in entries:
            el = etree.SubElement(parent, _tei("figure"))
            if ref_type is RefType.TABLE:
                el.set("type", "table")
            el.set(XML_ID, float_id(ref_type, entry.id))
            if entry.label:
                etree.SubElement(el, _tei("head")).text = entry.label


def _write_persons(parent: etree._Element, persons: Sequence[Person]) -> None:
    by_role: dict[str, list[Person]] = {}
    for person in persons:
        by_role.setdefault(person.role, []).append(person)
    for role, members in by_role.items():
        list_el = etree.SubElement(parent, _tei("listPerson"), type=role)
        for person in members:
            person_el = etree.SubElement(list_el, _tei("person"))
            name_el = etree.SubElement(person_el, _tei("persName"))
            if person.first_name:
                etree.SubElement(name_el, _tei("forename")).text = person.first_name
            if person.last_name:
                etree.SubElement(name_el, _tei("surname")).text = person.last_name
            if person.email:
                etree.SubElement(person_el, _tei("email")).text = person.email


def build_tei(
    root: DocumentNode,
    *,
    notes: Sequence[NoteRecord] = (),
    persons: Sequence[Person] = (),
    figures: Sequence[CatalogEntry] = (),
    tables: Sequence[CatalogEntry] = (),
    config: StructuringConfig | None = None,
    id_factory: Callable[[], str] = default_id_factory,
) -> etree._Element:
    """Build the ``<TEI>`` element for a structured document.

    ``figures`` and ``tables`` are the catalogs references were resolved
    against; each entry is written after the divisions so that every
    reference target exists in the document.
    """
    writer = _TeiWriter(config or StructuringConfig(), id_factory)
    tei = etree.Element(_tei("TEI"), nsmap={None: TEI_NS})
    header = etree.SubElement(tei, _tei("teiHeader"))
    file_desc = etree.SubElement(header, _tei("fileDesc"))
    source_desc = etree.SubElement(file_desc, _tei("sourceDesc"))
    _write_persons(source_desc, persons)

    text_el = etree.SubElement(tei, _tei("text"))
    body_el = etree.SubElement(text_el, _tei("body"))
    writer.write(body_el, root)
    _write_floats(body_el, figures, tables)
    for record in notes:
        writer.write_note(body_el, record)
    return tei


def serialize_tei(
    root: DocumentNode,
    *,
    notes: Sequence[NoteRecord] = (),
    persons: Sequence[Person] = (),
    figures: Sequence[CatalogEntry] = (),
    tables: Sequence[CatalogEntry] = (),
    config: StructuringConfig | None = None,
    id_factory: Callable[[], str] = default_id_factory,
    pretty: bool = True,
) -> str:
    tei = build_tei(
        root,
        notes=notes,
        persons=persons,
        figures=figures,
        tables=tables,
        config=config,
        id_factory=id_factory,
    )
    return etree.tostring(tei, encoding="unicode", pretty_print=pretty)


def node_to_dict(node: DocumentNode) -> dict[str, Any]:
    """Plain-dict view of a node and its subtree (for JSON dumps)."""
    out: dict[str, Any] = {"kind": node.kind.value}
    if node.text:
        out["text"] = node.text
    if node.level is not None:
        out["level"] = node.level
    if node.numbering is not None:
        out["numbering"] = node.numbering
    if node.subtype is not None:
        out["type"] = node.subtype
    if node.target is not None:
        out["target"] = node.target
    if node.boxes:
        out["coords"] = coords_attribute(node.boxes)
    if node.children:
        out["children"] = [node_to_dict(child) for child in node.children]
    return out


def document_to_dict(
    root: DocumentNode,
    notes: Sequence[NoteRecord] = (),
    persons: Sequence[Person] = (),
) -> dict[str, Any]:
    return {
        "body": node_to_dict(root),
        "notes": [
            {"place": r.place.value, "n": r.number, "text": r.text} for r in notes
        ],
        "persons": [
            {
                "first_name": p.first_name,
                "last_name": p.last_name,
                "role": p.role,
                "email": p.email,
            }
            for p in persons
        ],
    }
