"""Regex-class entity extraction used by scout strategies and aggregation.

This is a cheap pattern layer over hit text, not NLP. Each extractor
returns matches in reading order, deduplicated by normalized name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from .models import EntityType

MONEY_RE = re.compile(r"\$[\d,]+(?:\.\d{2})?(?:\s?(?:million|billion|thousand|[MBK])\b)?")
PERSON_RE = re.compile(r"\b[A-Z][a-z]+(?: [A-Z]\.)? [A-Z][a-z]+\b")
COMPANY_RE = re.compile(
    r"\b(?:[A-Z][A-Za-z0-9&]*\s){0,3}[A-Z][A-Za-z0-9&]*"
    r"\s?(?:Corp(?:oration)?|Inc|LLC|Ltd|GmbH|Group|Holdings|Partners)\b\.?"
    r"|\b[A-Z][a-z]+[A-Z][A-Za-z]+\b"
)
US_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b")
ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
LONG_DATE_RE = re.compile(
    r"\b(?:January|February|March|April|May|June|July|August|September|"
    r"October|November|December) \d{1,2}, \d{4}\b"
)

DATE_PATTERNS = (US_DATE_RE, ISO_DATE_RE, LONG_DATE_RE)
DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%B %d, %Y")

# Capitalized pairs that look like names but are not people
_NON_PERSON_WORDS = frozenset({
    "The", "This", "That", "These", "Those", "Dear", "From", "Subject",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
    "Sunday", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
    "Board", "Legal", "Department", "Section", "Article", "United",
    "States", "New", "Chief", "Officer", "Vice", "President",
})


@dataclass(frozen=True)
class EntityMatch:
    """One entity found in a span of text."""

    text: str
    entity_type: EntityType
    start: int


def normalize_entity_name(name: str) -> str:
    """Canonical form used to merge entities: trimmed, single-spaced, casefolded."""
    return " ".join(name.split()).strip(".,;:").casefold()


def parse_date(text: str) -> datetime | None:
    """Parse a date string in any supported format.

    Returns a UTC datetime, or None when the text is not a parseable date.
    """
    candidate = text.strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)
    return None


def extract_money(text: str) -> list[EntityMatch]:
    return _collect(MONEY_RE, text, EntityType.AMOUNT)


def extract_people(text: str) -> list[EntityMatch]:
    matches = []
    for match in PERSON_RE.finditer(text):
        words = match.group(0).split()
        if words[0] in _NON_PERSON_WORDS or words[-1] in _NON_PERSON_WORDS:
            continue
        matches.append(EntityMatch(match.group(0), EntityType.PERSON, match.start()))
    return _dedupe(matches)


def extract_companies(text: str) -> list[EntityMatch]:
    return _collect(COMPANY_RE, text, EntityType.COMPANY)


def extract_dates(text: str) -> list[EntityMatch]:
    matches = []
    for pattern in DATE_PATTERNS:
        matches.extend(
            EntityMatch(m.group(0), EntityType.DATE, m.start())
            for m in pattern.finditer(text)
        )
    matches.sort(key=lambda m: m.start)
    return _dedupe(matches)


def extract_entities(text: str) -> list[EntityMatch]:
    """All people, companies, amounts and dates in ``text``, in reading order.

    A span claimed by a company match is not reported again as a person.
    """
    companies = extract_companies(text)
    company_names = {normalize_entity_name(c.text) for c in companies}
    people = [
        p for p in extract_people(text)
        if not any(normalize_entity_name(p.text) in name for name in company_names)
    ]
    matches = companies + people + extract_money(text) + extract_dates(text)
    matches.sort(key=lambda m: m.start)
    return _dedupe(matches)


def extract_amount_value(text: str) -> float | None:
    """Numeric value of a money match, honoring million/billion suffixes."""
    match = re.match(r"\$([\d,]+(?:\.\d{2})?)\s?(million|billion|thousand|[MBK])?", text.strip())
    if not match:
        return None
    digits = match.group(1).replace(",", "")
    if not digits:
        return None
    value = float(digits)
    multiplier = {
        "thousand": 1e3, "k": 1e3,
        "million": 1e6, "m": 1e6,
        "billion": 1e9, "b": 1e9,
    }.get((match.group(2) or "").lower(), 1.0)
    return value * multiplier


def _collect(pattern: re.Pattern, text: str, entity_type: EntityType) -> list[EntityMatch]:
    return _dedupe([
        EntityMatch(m.group(0).strip(), entity_type, m.start())
        for m in pattern.finditer(text)
    ])


def _dedupe(matches: list[EntityMatch]) -> list[EntityMatch]:
    seen = set()
    unique = []
    for match in matches:
        key = normalize_entity_name(match.text)
        if key in seen:
            continue
        seen.add(key)
        unique.append(match)
    return unique
