"""Leading numbering extraction for section headings.

Matchers are tried in a fixed priority order; the first one that matches
wins. Examples:
    "1. Diagnosis"          -> ("1.", "Diagnosis")
    "2 Antecedents"         -> ("2", "Antecedents")
    "3.2 Biology"           -> ("3.2", "Biology")
    "1.1. Examen clinique"  -> ("1.1.", "Examen clinique")
    "IV. Conclusion"        -> ("IV.", "Conclusion")
"""
from __future__ import annotations

import re
from dataclasses import dataclass

# Priority order matters: "1.1. Foo" must fall through the simple pattern.
_NUMBERING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(\d+)\.?\s"),
    re.compile(r"^((\d+)\.)+(\d+)\s"),
    re.compile(r"^((\d+)\.)+\s"),
    re.compile(r"^([IVX]+|[A-Z])(\.(\d+))*\.\s"),
)


@dataclass(frozen=True, slots=True)
class SectionNumber:
    number: str     # "1.", "3.2", "IV."
    heading: str    # residual heading text


def extract_section_number(text: str) -> SectionNumber | None:
    """Split a heading into its numbering and residual text.

    Returns None when no pattern matches; the caller keeps the heading
    unchanged.
    """
    if not text:
        return None
    for pattern in _NUMBERING_PATTERNS:
        m = pattern.search(text)
        if m is None:
            continue
        matched = m.group(0)
        residual = text.replace(matched, "", 1).strip()
        return SectionNumber(number=re.sub(r"\s+", "", matched), heading=residual)
    return None
