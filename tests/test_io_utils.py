"""Tests for medstruct.io_utils."""
from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from medstruct.document_types import CatalogEntry, NotePlace
from medstruct.errors import MissingResourceError
from medstruct.io_utils import (
    DocumentInput,
    box_from_dict,
    load_document_input,
    load_json,
    note_block_from_dict,
    save_json,
    save_text,
    tokens_from_records,
)
from medstruct.tokens import BoundingBox


class TestJson:
    def test_save_and_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "doc.json"
        save_json({"b": 1, "a": [1, 2]}, path)
        assert load_json(path) == {"a": [1, 2], "b": 1}
        assert path.read_bytes().startswith(b'{\n  "a"')

    def test_compact_save(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        save_json({"a": 1}, path, pretty=False)
        assert path.read_bytes() == b'{"a":1}'

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MissingResourceError, match="Input not found"):
            load_json(tmp_path / "absent.json")

    def test_save_text(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "doc.xml"
        save_text("<TEI/>", path)
        assert path.read_text(encoding="utf-8") == "<TEI/>"


class TestDecoders:
    def test_box_short_and_long_keys(self) -> None:
        expected = BoundingBox(1, 2.0, 3.0, 4.0, 5.0)
        assert box_from_dict({"page": 1, "x": 2, "y": 3, "w": 4, "h": 5}) == expected
        assert box_from_dict({"page": 1, "x": 2, "y": 3, "width": 4, "height": 5}) == expected
        assert box_from_dict(None) is None

    def test_tokens_default_index_and_label(self) -> None:
        tokens = tokens_from_records(
            [{"text": "Fièvre"}, {"text": None, "label": "<paragraph>"}],
            default_label="<other>",
        )
        assert [(t.text, t.label, t.index) for t in tokens] == [
            ("Fièvre", "<other>", 0), ("", "<paragraph>", 1),
        ]

    def test_note_block_from_text(self) -> None:
        block = note_block_from_dict({"place": "head", "text": "Hôpital Nord"})
        assert block.place is NotePlace.HEAD
        assert block.raw_text == "Hôpital Nord"

    def test_note_block_default_place(self) -> None:
        block = note_block_from_dict({"tokens": [{"text": "1"}, {"text": " Page"}]})
        assert block.place is NotePlace.FOOT
        assert block.raw_text == "1 Page"


class TestDocumentInput:
    def test_full_document(self) -> None:
        doc = DocumentInput.from_dict({
            "tokens": [{"text": "Fièvre", "label": "<paragraph>"}],
            "figures": [{"id": 1, "label": "Figure 1"}],
            "notes": [{"text": "Confidentiel"}],
            "persons": [{"first_name": "Jean", "last_name": "Dupont"}],
            "emails": ["jdupont@x.fr"],
        })
        assert len(doc.tokens) == 1
        assert doc.figures == (CatalogEntry("1", "Figure 1"),)
        assert doc.tables == ()
        assert len(doc.note_blocks) == 1
        assert doc.persons is not None and doc.persons[0].role == "medic"
        assert doc.emails == ["jdupont@x.fr"]

    def test_persons_absent_stay_none(self) -> None:
        assert DocumentInput.from_dict({"tokens": []}).persons is None

    def test_tokens_required(self) -> None:
        with pytest.raises(MissingResourceError, match="tokens"):
            DocumentInput.from_dict({"figures": []})

    def test_load_document_input(self, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        path.write_bytes(orjson.dumps({"tokens": [{"text": "Bonjour", "label": "<title>"}]}))
        doc = load_document_input(path)
        assert doc.tokens[0].label == "<title>"
