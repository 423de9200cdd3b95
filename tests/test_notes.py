"""Tests for medstruct.notes."""
from __future__ import annotations

from medstruct.document_types import NoteBlock, NotePlace
from medstruct.notes import deduplicate_notes
from medstruct.tokens import LabeledToken


def _block(*texts: str, place: NotePlace = NotePlace.HEAD) -> NoteBlock:
    return NoteBlock(
        tokens=tuple(LabeledToken(text=t, label="", index=i) for i, t in enumerate(texts)),
        place=place,
    )


class TestDeduplicateNotes:
    def test_repeated_header_kept_once(self) -> None:
        blocks = [
            _block("1", " ", "Running", " ", "header"),
            _block("1", " ", "Running", " ", "header"),
            _block("2", " ", "Running", " ", "header"),
        ]
        records = deduplicate_notes(blocks)
        assert len(records) == 1
        assert records[0].text == "Running header"
        assert records[0].number == 1
        assert records[0].place is NotePlace.HEAD

    def test_distinct_notes_kept_in_order(self) -> None:
        records = deduplicate_notes([_block("Service de cardiologie"), _block("Hôpital Nord")])
        assert [r.text for r in records] == ["Service de cardiologie", "Hôpital Nord"]
        assert all(r.number is None for r in records)

    def test_short_note_discarded(self) -> None:
        assert deduplicate_notes([_block("p. 3"), _block("12345")]) == []

    def test_min_length_boundary(self) -> None:
        records = deduplicate_notes([_block("abcdef")])
        assert [r.text for r in records] == ["abcdef"]

    def test_custom_min_length(self) -> None:
        assert deduplicate_notes([_block("abcdef")], min_length=7) == []
        assert len(deduplicate_notes([_block("abc")], min_length=0)) == 1

    def test_text_normalized_and_dehyphenated(self) -> None:
        records = deduplicate_notes([_block("Service de cardio-\n", "logie   Nord")])
        assert records[0].text == "Service de cardiologie Nord"

    def test_ordinal_tokens_consumed(self) -> None:
        records = deduplicate_notes([_block("1", "2", " ", "Rapport", " ", "final")])
        assert records[0].number == 12
        assert [t.text for t in records[0].tokens] == [" ", "Rapport", " ", "final"]

    def test_ordinal_inside_token_not_consumed(self) -> None:
        records = deduplicate_notes([_block("3Rapport", " ", "final")])
        assert records[0].number == 3
        assert records[0].text == "Rapport final"
        assert records[0].tokens[0].text == "3Rapport"

    def test_numbered_duplicate_of_plain_note_dropped(self) -> None:
        records = deduplicate_notes([_block("Rapport final"), _block("4 Rapport final")])
        assert len(records) == 1
        assert records[0].number is None

    def test_place_preserved(self) -> None:
        records = deduplicate_notes([_block("Confidentiel", place=NotePlace.FOOT)])
        assert records[0].place is NotePlace.FOOT

    def test_empty_block_skipped(self) -> None:
        assert deduplicate_notes([NoteBlock(tokens=())]) == []
