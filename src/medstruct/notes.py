"""Running header/footer deduplication.

Headers and footers recur on every page. Each block is normalized
(dehyphenated, whitespace collapsed, trimmed); blocks shorter than the
minimum length are discarded; a leading integer becomes the note's
ordinal and is stripped from the text and, when the digits line up, from
the backing tokens. A block whose stripped text was already emitted is
dropped: the first occurrence wins.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from medstruct.document_types import NoteBlock, NoteRecord
from medstruct.text_utils import normalize_dehyphenize_text
from medstruct.tokens import LabeledToken

log = logging.getLogger(__name__)

MIN_NOTE_LENGTH = 6

_START_NUM_RE = re.compile(r"^(\d+)(.*)", re.DOTALL)


def _consume_ordinal_tokens(
    tokens: Sequence[LabeledToken], digits: str,
) -> tuple[LabeledToken, ...]:
    """Drop leading tokens whose text spells out ``digits``.

    Tokens are consumed only while each one is a prefix of what remains
    to consume; the first mismatch stops consumption.
    """
    to_consume = digits
    start = 0
    for token in tokens:
        if not token.text:
            continue
        if not to_consume.startswith(token.text):
            break
        start += 1
        to_consume = to_consume[len(token.text):]
        if not to_consume:
            break
    return tuple(tokens[start:])


def deduplicate_notes(
    blocks: Iterable[NoteBlock],
    *,
    min_length: int = MIN_NOTE_LENGTH,
) -> list[NoteRecord]:
    """Normalize running-note blocks and keep first occurrences only."""
    seen: set[str] = set()
    records: list[NoteRecord] = []
    for block in blocks:
        if not block.tokens:
            continue
        text = normalize_dehyphenize_text(block.raw_text)
        if len(text) < min_length:
            log.debug("Discarding short %s note %r", block.place.value, text)
            continue

        number: int | None = None
        tokens = block.tokens
        m = _START_NUM_RE.match(text)
        if m:
            number = int(m.group(1))
            text = m.group(2).strip()
            tokens = _consume_ordinal_tokens(tokens, m.group(1))

        if text in seen:
            log.debug("Dropping repeated %s note %r", block.place.value, text)
            continue
        seen.add(text)
        records.append(NoteRecord(text=text, place=block.place, number=number, tokens=tokens))
    return records
