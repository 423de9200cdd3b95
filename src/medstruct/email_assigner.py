"""Assignment of extracted contact emails to named persons.

With exactly one person and one email the email is assigned outright,
unless that person already has one.
Otherwise each email's local part is compared, case-insensitively, with
name variants of every still-unassigned person; the globally closest
person wins if the Levenshtein distance is strictly less than half the
local part's length. A person receives at most one email.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from rapidfuzz.distance import Levenshtein

from medstruct.document_types import Person

log = logging.getLogger(__name__)

type NameVariantGenerator = Callable[[str | None, str | None], Sequence[str]]


def generate_email_variants(first_name: str | None, last_name: str | None) -> list[str]:
    """Plausible email local parts for a person.

    "Jean Dupont" -> dupont, jeandupont, dupontjean, jdupont, dupontj, jeand
    """
    first = (first_name or "").strip()
    last = (last_name or "").strip()
    variants: list[str] = []
    if last:
        variants.append(last)
        if first:
            variants.append(first + last)
            variants.append(last + first)
            if len(first) > 1:
                variants.append(first[0] + last)
                variants.append(last + first[0])
            if len(last) > 1:
                variants.append(first + last[0])
    elif first:
        variants.append(first)
    return variants


def _local_part(email: str) -> str | None:
    at = email.find("@")
    if at == -1:
        return None
    return email[:at].lower()


def assign_emails(
    persons: list[Person] | None,
    emails: Sequence[str],
    variant_generator: NameVariantGenerator = generate_email_variants,
) -> None:
    """Assign ``emails`` to ``persons`` in place."""
    if persons is None:
        return
    if len(persons) == 1 and len(emails) == 1:
        if not persons[0].has_email:
            persons[0].assign_email(emails[0])
        return

    for email in emails:
        local = _local_part(email)
        if local is None:
            continue
        best = -1
        best_dist = -1
        for idx, person in enumerate(persons):
            if person.has_email:
                continue
            for variant in variant_generator(person.first_name, person.last_name):
                dist = Levenshtein.distance(local, variant.lower())
                if best == -1 or dist < best_dist:
                    best = idx
                    best_dist = dist
        if best != -1 and best_dist < len(local) / 2:
            persons[best].assign_email(email)
        else:
            log.debug("No person close enough to email %s", email)
