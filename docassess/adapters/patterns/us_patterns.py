"""Built-in US sensitive-data regex pattern library for docassess.

This module provides pre-compiled regular expressions for the sensitive-data
types that show up in US school and district policy documents:

* Social Security numbers
* Email addresses
* US telephone numbers
* Payment card numbers
* Student ID numbers
* Dates of birth
* Bank account and routing numbers

Additional institution-specific patterns can be supplied via a JSON config
file (see :func:`load_patterns`).  Custom patterns are appended to the
built-in set and compiled on load; no regex compilation occurs at scan time.

**JSON config format** (array of objects at the root):

.. code-block:: json

    [
        {
            "name": "EMPLOYEE_ID",
            "pattern": "EMP-\\\\d{6}",
            "severity": "medium",
            "confidence": 0.8
        }
    ]

Valid severity values: ``"low"``, ``"medium"``, ``"high"``, ``"critical"``.
``confidence`` is optional (default ``0.8``) and must lie in ``[0, 1]``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_VALID_SEVERITIES: frozenset[str] = frozenset({"low", "medium", "high", "critical"})
DEFAULT_CONFIDENCE = 0.8

# ---------------------------------------------------------------------------
# Built-in raw pattern strings
# ---------------------------------------------------------------------------

# Social Security number: 123-45-6789, 123 45 6789, or nine bare digits.
_SSN = r"\b(?:\d{3}-\d{2}-\d{4}|\d{3}\s\d{2}\s\d{4}|\d{9})\b"

_EMAIL = (
    r"\b"
    r"[A-Za-z0-9._%+\-]+"      # local part
    r"@"
    r"[A-Za-z0-9.\-]+"         # domain labels
    r"\.[A-Za-z]{2,}"          # TLD (≥2 characters)
    r"\b"
)

# US telephone number: 555-123-4567, (555) 123-4567, or ten bare digits.
# The parenthesised form starts with a non-word character, so it uses a
# lookbehind instead of \b.
_US_PHONE = (
    r"(?<!\w)"
    r"(?:"
        r"\d{3}-\d{3}-\d{4}"
    r"|"
        r"\(\d{3}\)\s?\d{3}-\d{4}"
    r"|"
        r"\d{10}"
    r")"
    r"(?!\d)"
)

# Sixteen-digit card number in groups of four, optionally separated.
_CREDIT_CARD = r"\b\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{4}\b"

# "Student ID: 1234567" / "ID Number 12345678"
_STUDENT_ID = r"\b(?:student\s?id|id\s?number):?\s?\d{6,10}\b"

# 4/12/2009, 2009-04-12, April 12, 2009
_DATE_OF_BIRTH = (
    r"\b(?:"
        r"\d{1,2}/\d{1,2}/\d{4}"
    r"|"
        r"\d{4}-\d{2}-\d{2}"
    r"|"
        r"(?:January|February|March|April|May|June|July|August|September|"
        r"October|November|December)\s\d{1,2},\s\d{4}"
    r")\b"
)

# "Account Number: 12345678" / "Routing Number 123456789"
_BANK_ACCOUNT = r"\b(?:account\s?number:?\s?\d{8,17}|routing\s?number:?\s?\d{9})\b"


# ---------------------------------------------------------------------------
# PatternEntry dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternEntry:
    """An immutable, pre-compiled sensitive-data pattern.

    Attributes:
        name: Category identifier reported in matches (e.g. ``"SSN"``).
        regex: Pre-compiled regular expression.
        severity: One of ``"low"``, ``"medium"``, ``"high"``, ``"critical"``.
        confidence: Base confidence assigned to a match before any
            category-specific adjustment.
    """

    name: str
    regex: re.Pattern  # type: ignore[type-arg]
    severity: str
    confidence: float = DEFAULT_CONFIDENCE


#: (name, raw_pattern, severity, base confidence) for the built-in patterns.
_BUILTIN_DEFINITIONS: list[tuple[str, str, str, float]] = [
    ("SSN",           _SSN,           "critical", 0.7),
    ("EMAIL",         _EMAIL,         "medium",   0.9),
    ("PHONE",         _US_PHONE,      "medium",   0.7),
    ("CREDIT_CARD",   _CREDIT_CARD,   "critical", 0.6),
    ("STUDENT_ID",    _STUDENT_ID,    "high",     0.8),
    ("DATE_OF_BIRTH", _DATE_OF_BIRTH, "high",     0.8),
    ("BANK_ACCOUNT",  _BANK_ACCOUNT,  "critical", 0.8),
]

_BUILTIN_PATTERNS: list[PatternEntry] = [
    PatternEntry(
        name=name,
        regex=re.compile(raw, re.IGNORECASE),
        severity=severity,
        confidence=confidence,
    )
    for name, raw, severity, confidence in _BUILTIN_DEFINITIONS
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_builtin_patterns() -> list[PatternEntry]:
    """Return a new list of the built-in patterns in canonical order."""
    return list(_BUILTIN_PATTERNS)


def load_patterns(custom_config_path: str | Path | None = None) -> list[PatternEntry]:
    """Return the built-in patterns followed by any custom ones.

    Malformed custom entries (missing keys, invalid severity or confidence,
    un-compilable regex) are skipped with a warning, and an unreadable or
    invalid config file falls back to the built-ins, so a bad config never
    prevents the detector from starting.

    Args:
        custom_config_path: Path to a JSON array of custom pattern objects,
            or ``None`` for built-ins only.
    """
    patterns = get_builtin_patterns()

    if custom_config_path is None:
        return patterns

    path = Path(custom_config_path)
    if not path.exists():
        logger.warning(
            "Custom pattern config not found: %s; using built-in patterns only",
            path,
        )
        return patterns

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        logger.error("Cannot read custom pattern config %s: %s", path, exc)
        return patterns
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in custom pattern config %s: %s", path, exc)
        return patterns

    if not isinstance(entries, list):
        logger.error(
            "Custom pattern config %s must contain a JSON array at the root (got %s)",
            path,
            type(entries).__name__,
        )
        return patterns

    loaded = 0
    for i, entry in enumerate(entries):
        parsed = _parse_entry(i, entry)
        if parsed is not None:
            patterns.append(parsed)
            loaded += 1

    logger.info(
        "Loaded %d custom pattern(s) from %s (total patterns: %d)",
        loaded,
        path,
        len(patterns),
    )
    return patterns


def _parse_entry(index: int, entry: object) -> PatternEntry | None:
    if not isinstance(entry, dict):
        logger.warning("Custom pattern entry at index %d is not a JSON object; skipping", index)
        return None

    name = entry.get("name")
    raw_pattern = entry.get("pattern")
    severity = entry.get("severity")
    confidence = entry.get("confidence", DEFAULT_CONFIDENCE)

    if not name or not isinstance(name, str):
        logger.warning("Custom pattern entry at index %d missing valid 'name'; skipping", index)
        return None
    if not raw_pattern or not isinstance(raw_pattern, str):
        logger.warning("Custom pattern %r missing valid 'pattern'; skipping", name)
        return None
    if severity not in _VALID_SEVERITIES:
        logger.warning(
            "Custom pattern %r has invalid severity %r (must be one of %s); skipping",
            name,
            severity,
            sorted(_VALID_SEVERITIES),
        )
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        logger.warning("Custom pattern %r has invalid confidence %r; skipping", name, confidence)
        return None

    try:
        compiled = re.compile(raw_pattern, re.IGNORECASE)
    except re.error as exc:
        logger.error("Custom pattern %r has invalid regex %r: %s; skipping", name, raw_pattern, exc)
        return None

    return PatternEntry(name=name, regex=compiled, severity=severity, confidence=float(confidence))
