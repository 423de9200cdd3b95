"""Tests for medstruct.serializer."""
from __future__ import annotations

import itertools

from lxml import etree

from medstruct.config import StructuringConfig
from medstruct.document_types import CatalogEntry, NotePlace, NoteRecord, Person
from medstruct.serializer import (
    TEI_NS,
    XML_ID,
    build_tei,
    document_to_dict,
    float_id,
    serialize_tei,
)
from medstruct.tokens import BoundingBox, LabeledToken
from medstruct.tree.nodes import (
    RefType,
    body,
    division,
    heading,
    list_item,
    list_node,
    note,
    paragraph,
    reference,
    sentence,
)

NS = {"tei": TEI_NS}
BOX = BoundingBox(1, 10.0, 20.0, 30.0, 40.0)


def _counter_ids():
    counter = itertools.count(1)
    return lambda: f"_id{next(counter)}"


def _sample_tree():
    root = body()
    title_div = root.append(division())
    title_div.append(heading("Compte rendu", 0))
    div = root.append(division())
    div.append(heading("Diagnosis", 1, "1."))
    par = div.append(paragraph())
    par.add_text("Voir ")
    par.append(reference("Figure 1", RefType.FIGURE, "1"))
    par.add_text(" et ")
    par.append(reference("Tableau 9", RefType.TABLE))
    par.add_text(".")
    return root


def _xpath(el, path):
    return el.xpath(path, namespaces=NS)


class TestBuildTei:
    def test_document_skeleton(self) -> None:
        tei = build_tei(_sample_tree())
        assert tei.tag == f"{{{TEI_NS}}}TEI"
        assert len(_xpath(tei, "/tei:TEI/tei:teiHeader/tei:fileDesc/tei:sourceDesc")) == 1
        assert len(_xpath(tei, "/tei:TEI/tei:text/tei:body/tei:div")) == 2

    def test_headings(self) -> None:
        tei = build_tei(_sample_tree())
        title, head = _xpath(tei, "//tei:head")
        assert title.get("type") == "title"
        assert title.get("level") is None
        assert title.text == "Compte rendu"
        assert head.get("level") == "1"
        assert head.get("n") == "1."
        assert head.text == "Diagnosis"

    def test_paragraph_mixed_content(self) -> None:
        tei = build_tei(_sample_tree())
        (p,) = _xpath(tei, "//tei:p")
        assert "".join(p.itertext()) == "Voir Figure 1 et Tableau 9."
        fig, tab = _xpath(p, "tei:ref")
        assert fig.get("type") == "figure"
        assert fig.get("target") == "#fig_1"
        assert fig.tail == " et "
        assert tab.get("type") == "table"
        assert tab.get("target") is None
        assert p.text == "Voir "

    def test_table_target_prefix(self) -> None:
        root = body()
        div = root.append(division())
        div.append(reference("Tableau 2", RefType.TABLE, "2"))
        (ref,) = _xpath(build_tei(root), "//tei:ref")
        assert ref.get("target") == "#tab_2"

    def test_lists_and_notes(self) -> None:
        root = body()
        div = root.append(division())
        lst = div.append(list_node())
        lst.append(list_item("Paracétamol"))
        lst.append(list_item("Repos"))
        div.append(note("Jean Dupont", "patient"))
        tei = build_tei(root)
        assert [i.text for i in _xpath(tei, "//tei:list/tei:item")] == ["Paracétamol", "Repos"]
        (n,) = _xpath(tei, "//tei:div/tei:note")
        assert n.get("type") == "patient"
        assert n.text == "Jean Dupont"

    def test_sentences(self) -> None:
        root = body()
        par = root.append(division()).append(paragraph())
        s1 = par.append(sentence())
        s1.add_text("Un.")
        s1.boxes = [BOX]
        par.append(sentence()).add_text("Deux.")
        config = StructuringConfig(coordinate_elements=frozenset({"s"}))
        sentences = _xpath(build_tei(root, config=config), "//tei:p/tei:s")
        assert [s.text for s in sentences] == ["Un.", "Deux."]
        assert sentences[0].get("coords") == "1,10.00,20.00,30.00,40.00"
        assert sentences[1].get("coords") is None


class TestIdentifiers:
    def test_ids_generated_when_enabled(self) -> None:
        config = StructuringConfig(generate_ids=True)
        tei = build_tei(_sample_tree(), config=config, id_factory=_counter_ids())
        ids = [el.get(XML_ID) for el in _xpath(tei, "//tei:div | //tei:head | //tei:p")]
        assert sorted(ids) == ["_id1", "_id2", "_id3", "_id4", "_id5"]
        assert all(ref.get(XML_ID) is None for ref in _xpath(tei, "//tei:ref"))

    def test_ids_unique_with_default_factory(self) -> None:
        config = StructuringConfig(generate_ids=True)
        tei = build_tei(_sample_tree(), config=config)
        ids = [el.get(XML_ID) for el in tei.iter() if el.get(XML_ID)]
        assert len(ids) == 5
        assert len(set(ids)) == 5
        assert all(i.startswith("_") and len(i) == 8 for i in ids)

    def test_no_ids_by_default(self) -> None:
        tei = build_tei(_sample_tree(), id_factory=_counter_ids())
        assert not any(el.get(XML_ID) for el in tei.iter())


class TestCoordinates:
    def test_ref_coords_only_when_requested(self) -> None:
        root = body()
        ref = root.append(division()).append(reference("Figure 1", RefType.FIGURE, "1"))
        ref.boxes = [BOX, BoundingBox(2, 0.0, 0.0, 5.0, 5.0)]

        plain = _xpath(build_tei(root), "//tei:ref")[0]
        assert plain.get("coords") is None

        config = StructuringConfig(coordinate_elements=frozenset({"ref"}))
        with_coords = _xpath(build_tei(root, config=config), "//tei:ref")[0]
        assert with_coords.get("coords") == "1,10.00,20.00,30.00,40.00;2,0.00,0.00,5.00,5.00"


class TestRunningNotes:
    def test_notes_follow_divisions(self) -> None:
        token = LabeledToken("Hôpital", "", 0, BOX)
        notes = [
            NoteRecord("Hôpital Nord", NotePlace.HEAD, number=2, tokens=(token,)),
            NoteRecord("Confidentiel", NotePlace.FOOT),
        ]
        config = StructuringConfig(coordinate_elements=frozenset({"note"}))
        tei = build_tei(_sample_tree(), notes=notes, config=config)
        children = _xpath(tei, "//tei:body/*")
        assert [etree.QName(c).localname for c in children] == ["div", "div", "note", "note"]
        head_note, foot_note = children[2:]
        assert head_note.get("place") == "head"
        assert head_note.get("n") == "2"
        assert head_note.get("coords") == "1,10.00,20.00,30.00,40.00"
        assert head_note.text == "Hôpital Nord"
        assert foot_note.get("place") == "foot"
        assert foot_note.get("n") is None
        assert foot_note.get("coords") is None


class TestCatalogEntries:
    def test_every_target_resolves_to_an_element(self) -> None:
        root = body()
        par = root.append(division()).append(paragraph())
        par.append(reference("Figure 1", RefType.FIGURE, "1"))
        par.append(reference("Tableau 2", RefType.TABLE, "2"))
        tei = build_tei(
            root,
            figures=[CatalogEntry("1", "Figure 1")],
            tables=[CatalogEntry("1", "Tableau 1"), CatalogEntry("2", "Tableau 2")],
        )
        ids = {el.get(XML_ID) for el in tei.iter() if el.get(XML_ID)}
        targets = _xpath(tei, "//tei:ref/@target")
        assert targets == ["#fig_1", "#tab_2"]
        assert all(t[1:] in ids for t in targets)

    def test_entries_follow_divisions(self) -> None:
        notes = [NoteRecord("Confidentiel", NotePlace.FOOT)]
        tei = build_tei(
            _sample_tree(),
            notes=notes,
            figures=[CatalogEntry("1", "Figure 1"), CatalogEntry("2")],
            tables=[CatalogEntry("1", "Tableau 1")],
        )
        children = _xpath(tei, "//tei:body/*")
        assert [etree.QName(c).localname for c in children] == [
            "div", "div", "figure", "figure", "figure", "note",
        ]
        fig1, fig2, tab1 = children[2:5]
        assert fig1.get(XML_ID) == "fig_1"
        assert fig1.get("type") is None
        assert _xpath(fig1, "tei:head/text()") == ["Figure 1"]
        assert fig2.get(XML_ID) == "fig_2"
        assert _xpath(fig2, "tei:head") == []
        assert tab1.get("type") == "table"
        assert tab1.get(XML_ID) == "tab_1"

    def test_float_id(self) -> None:
        assert float_id(RefType.FIGURE, "3") == "fig_3"
        assert float_id(RefType.TABLE, "b") == "tab_b"


class TestPersons:
    def test_list_person_per_role(self) -> None:
        persons = [
            Person("Jean", "Dupont", email="jdupont@x.fr"),
            Person("Marie", "Curie", role="patient"),
        ]
        tei = build_tei(body(), persons=persons)
        medics = _xpath(tei, "//tei:sourceDesc/tei:listPerson[@type='medic']/tei:person")
        assert len(medics) == 1
        assert _xpath(medics[0], "tei:persName/tei:forename/text()") == ["Jean"]
        assert _xpath(medics[0], "tei:persName/tei:surname/text()") == ["Dupont"]
        assert _xpath(medics[0], "tei:email/text()") == ["jdupont@x.fr"]
        patients = _xpath(tei, "//tei:listPerson[@type='patient']/tei:person")
        assert len(patients) == 1
        assert _xpath(patients[0], "tei:email") == []


class TestSerializeTei:
    def test_round_trips_through_parser(self) -> None:
        xml = serialize_tei(_sample_tree())
        assert xml.startswith("<TEI")
        parsed = etree.fromstring(xml)
        assert len(_xpath(parsed, "//tei:div")) == 2

    def test_compact_output(self) -> None:
        xml = serialize_tei(body(), pretty=False)
        assert "\n" not in xml


class TestDocumentToDict:
    def test_plain_view(self) -> None:
        out = document_to_dict(
            _sample_tree(),
            [NoteRecord("Confidentiel", NotePlace.FOOT, number=1)],
            [Person("Jean", "Dupont")],
        )
        div = out["body"]["children"][1]
        assert div["kind"] == "div"
        assert div["children"][0] == {
            "kind": "head", "text": "Diagnosis", "level": 1, "numbering": "1.",
        }
        ref = div["children"][1]["children"][1]
        assert ref == {"kind": "ref", "text": "Figure 1", "type": "figure", "target": "1"}
        assert out["notes"] == [{"place": "foot", "n": 1, "text": "Confidentiel"}]
        assert out["persons"] == [
            {"first_name": "Jean", "last_name": "Dupont", "role": "medic", "email": None},
        ]
