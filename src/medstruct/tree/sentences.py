"""Sentence segmentation of paragraph nodes.

Four phases per paragraph:
    1. Flatten the paragraph's text runs and references into one string,
       recording every reference's character range as a protected span.
    2. Ask the sentence detector for sentence spans; the detector never
       cuts inside a protected span.
    3. Rebuild the paragraph as Sentence nodes. Text runs are sliced at
       sentence boundaries; reference nodes are moved (never copied) into
       the sentence whose start is the largest one not exceeding the
       reference's start.
    4. Optionally align the paragraph's backing tokens against the
       flattened string to give each sentence its page geometry.

When the detector finds no sentence, the whole trimmed paragraph becomes
a single sentence.
"""
from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from nltk.tokenize.punkt import PunktParameters, PunktSentenceTokenizer, PunktTokenizer

from medstruct.document_types import OffsetPosition
from medstruct.errors import MissingResourceError
from medstruct.tokens import LabeledToken, union_boxes
from medstruct.tree.nodes import DocumentNode, NodeKind, sentence

log = logging.getLogger(__name__)

# Max characters an alphanumeric token may drift from the alignment cursor.
_MAX_TOKEN_DRIFT = 64


class SentenceDetector(Protocol):
    def detect(
        self,
        text: str,
        forbidden: Sequence[OffsetPosition],
        tokens: Sequence[LabeledToken],
        language: str,
    ) -> list[OffsetPosition]:
        """Return ordered, non-overlapping sentence spans over ``text``."""
        ...


# ---------------------------------------------------------------------------
# Default detector
# ---------------------------------------------------------------------------

# Punkt abbreviation types: lower-case, final period dropped.
_ABBREVIATIONS: dict[str, frozenset[str]] = {
    "fr": frozenset({
        "dr", "pr", "m", "mm", "mme", "mmes", "mlle", "st", "ste", "cf",
        "fig", "tab", "p", "pp", "env", "vol", "no", "n°", "c.-à-d", "ex",
    }),
    "en": frozenset({
        "dr", "mr", "mrs", "ms", "prof", "st", "vs", "e.g", "i.e", "fig",
        "figs", "tab", "no", "approx", "dept", "p", "pp", "vol",
    }),
}

# punkt_tab model directory per language code.
_PUNKT_MODELS: dict[str, str] = {
    "fr": "french",
    "en": "english",
    "de": "german",
    "es": "spanish",
    "it": "italian",
    "nl": "dutch",
    "pt": "portuguese",
}


def _language_code(language: str) -> str:
    return (language or "").lower()[:2]


@lru_cache(maxsize=None)
def _load_pretrained(model: str) -> PunktSentenceTokenizer:
    try:
        return PunktTokenizer(model)
    except LookupError as exc:
        raise MissingResourceError(
            f"Punkt model {model!r} is not installed (nltk.download('punkt_tab'))"
        ) from exc


@dataclass(frozen=True, slots=True)
class PunktSentenceDetector:
    """Sentence splitter on nltk's Punkt algorithm.

    By default Punkt runs untrained, seeded with the abbreviations of the
    document language (the union of all known lists for other languages),
    so no model download is needed and the output depends only on the
    inputs. ``pretrained=True`` loads the language's ``punkt_tab`` model
    instead (``french`` for ``fr``, ``english`` when unknown).

    Neighbouring sentences whose boundary falls inside a protected span
    are merged.
    """

    extra_abbreviations: frozenset[str] = frozenset()
    pretrained: bool = False

    def tokenizer(self, language: str) -> PunktSentenceTokenizer:
        code = _language_code(language)
        if self.pretrained:
            return _load_pretrained(_PUNKT_MODELS.get(code, "english"))
        abbreviations = _ABBREVIATIONS.get(code)
        if abbreviations is None:
            abbreviations = _ABBREVIATIONS["fr"] | _ABBREVIATIONS["en"]
        params = PunktParameters()
        params.abbrev_types = set(abbreviations) | {a.lower() for a in self.extra_abbreviations}
        return PunktSentenceTokenizer(params)

    def detect(
        self,
        text: str,
        forbidden: Sequence[OffsetPosition],
        tokens: Sequence[LabeledToken],
        language: str,
    ) -> list[OffsetPosition]:
        spans: list[OffsetPosition] = []
        for start, end in self.tokenizer(language).span_tokenize(text):
            _append_trimmed(spans, text, start, end)
        return merge_protected_boundaries(spans, forbidden)


def merge_protected_boundaries(
    spans: Sequence[OffsetPosition], forbidden: Sequence[OffsetPosition],
) -> list[OffsetPosition]:
    """Join neighbouring spans whose boundary lies inside a protected span."""
    merged: list[OffsetPosition] = []
    for span in spans:
        if merged and any(
            f.start < span.start and f.end > merged[-1].end for f in forbidden
        ):
            merged[-1] = OffsetPosition(merged[-1].start, span.end)
        else:
            merged.append(span)
    return merged


def _append_trimmed(spans: list[OffsetPosition], text: str, start: int, end: int) -> None:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if end > start:
        spans.append(OffsetPosition(start, end))


# ---------------------------------------------------------------------------
# Paragraph segmentation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FlattenedParagraph:
    text: str
    protected: tuple[OffsetPosition, ...]
    pieces: tuple[tuple[DocumentNode, OffsetPosition], ...]


def flatten_paragraph(par: DocumentNode) -> FlattenedParagraph:
    """Concatenate text runs and references, tracking reference spans."""
    parts: list[str] = []
    protected: list[OffsetPosition] = []
    pieces: list[tuple[DocumentNode, OffsetPosition]] = []
    offset = 0
    for child in par.children:
        if child.kind not in (NodeKind.TEXT, NodeKind.REF):
            continue
        pos = OffsetPosition(offset, offset + len(child.text))
        parts.append(child.text)
        pieces.append((child, pos))
        if child.kind is NodeKind.REF:
            protected.append(pos)
        offset = pos.end
    return FlattenedParagraph("".join(parts), tuple(protected), tuple(pieces))


def _fallback_span(text: str) -> list[OffsetPosition]:
    spans: list[OffsetPosition] = []
    _append_trimmed(spans, text, 0, len(text))
    return spans


def segment_paragraph(
    par: DocumentNode,
    detector: SentenceDetector,
    language: str,
    *,
    with_coordinates: bool = False,
) -> list[DocumentNode]:
    """Replace ``par``'s children with Sentence nodes and return them."""
    flat = flatten_paragraph(par)
    spans = [
        s for s in detector.detect(flat.text, flat.protected, par.tokens, language)
        if s.end > s.start
    ]
    if not spans:
        spans = _fallback_span(flat.text)
        if spans:
            log.debug("No sentence detected, keeping paragraph as one sentence")

    sentences = [sentence() for _ in spans]
    starts = [s.start for s in spans]
    if sentences:
        for node, pos in flat.pieces:
            if node.kind is NodeKind.REF:
                idx = max(bisect_right(starts, pos.start) - 1, 0)
                sentences[idx].append(node)
                continue
            for idx, span in enumerate(spans):
                lo = max(pos.start, span.start)
                hi = min(pos.end, span.end)
                if lo < hi:
                    sentences[idx].add_text(flat.text[lo:hi])

    if with_coordinates and sentences:
        _assign_sentence_geometry(flat.text, spans, par.tokens, sentences)

    par.clear()
    for s in sentences:
        par.append(s)
    return sentences


def _locate_token(text: str, token_text: str, cursor: int) -> int:
    pos = cursor
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if text.startswith(token_text, pos):
        return pos
    if not token_text.isalnum():
        return -1
    return text.find(token_text, cursor, pos + len(token_text) + _MAX_TOKEN_DRIFT)


def _assign_sentence_geometry(
    text: str,
    spans: Sequence[OffsetPosition],
    tokens: Sequence[LabeledToken],
    sentences: Sequence[DocumentNode],
) -> None:
    """Align tokens with the flattened text; each sentence gets its tokens' boxes."""
    starts = [s.start for s in spans]
    per_sentence: list[list[LabeledToken]] = [[] for _ in spans]
    cursor = 0
    for token in tokens:
        if token.is_skippable:
            continue
        pos = _locate_token(text, token.text, cursor)
        if pos < 0:
            continue
        cursor = pos + len(token.text)
        idx = bisect_right(starts, pos) - 1
        if idx >= 0 and spans[idx].contains(pos):
            per_sentence[idx].append(token)
    for node, toks in zip(sentences, per_sentence, strict=True):
        node.tokens = toks
        node.boxes = union_boxes(toks)
