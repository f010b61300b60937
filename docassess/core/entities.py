"""Lightweight entity recognition over extracted document text.

Produces the ``entities`` mapping handed to the gap analyzer: organisations,
named policies, dates, roles and technologies mentioned in the document.
Each category lists unique matches in first-seen order.
"""

from __future__ import annotations

import re

_ENTITY_PATTERNS: dict[str, re.Pattern[str]] = {
    "organizations": re.compile(
        r"\b[A-Z][a-z]+ (?:University|College|School|District|Institute)\b"
    ),
    "policies": re.compile(r"\b[A-Z][a-z]+ (?:Policy|Procedure|Guidelines?)\b"),
    "dates": re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b"),
    "roles": re.compile(
        r"\b(?:Principal|Superintendent|Teacher|Student|Administrator|Director)\b"
    ),
    "technologies": re.compile(
        r"\b(?:AI|artificial intelligence|machine learning|ChatGPT|Google|Microsoft|Apple|Zoom)\b",
        re.IGNORECASE,
    ),
}

ENTITY_CATEGORIES: tuple[str, ...] = tuple(_ENTITY_PATTERNS)


def extract_entities(text: str) -> dict[str, list[str]]:
    """Return ``{category: [unique matches]}`` for every entity category.

    Every category key is present, with an empty list when nothing matched,
    so empty text yields a mapping of empty lists.
    """
    entities: dict[str, list[str]] = {}
    for category, pattern in _ENTITY_PATTERNS.items():
        entities[category] = list(dict.fromkeys(pattern.findall(text)))
    return entities
