"""PatternSensitiveDataDetector — regex sensitive-data detector for the pipeline.

Implements the ``SensitiveDataDetector`` contract by running the compiled
pattern set from :mod:`docassess.adapters.patterns` against the extracted
text, returning one :class:`~docassess.core.capabilities.SensitiveDataMatch`
per accepted regex hit and, optionally, a redacted copy of the text.

**Confidence and filtering**

Each match starts from its pattern's base confidence, adjusted for
categories where the matched form says more:

* ``SSN`` in the dashed ``123-45-6789`` form: 0.95
* ``PHONE`` in the ``(555) 123-4567`` form: 0.9
* ``CREDIT_CARD`` passing the Luhn check: 0.95

Matches at or below :data:`MIN_CONFIDENCE` are dropped, as are well-known
placeholders (``000-00-0000``, ``555`` phone numbers, ``example.com``
addresses).

**Redaction**

Overlapping or adjacent match spans are merged, then replaced right-to-left
so earlier indices stay valid.  A span is replaced with its category token
(``[SSN REDACTED]``); a merged span covering several categories becomes
``[PII REDACTED]``.

Usage::

    from docassess.adapters.sensitive_data import PatternSensitiveDataDetector

    detector = PatternSensitiveDataDetector()
    report = await detector.scan("Contact jane.doe@district.org")
    print(report.matches, report.redacted_text)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

from docassess.adapters.patterns import PatternEntry, load_patterns
from docassess.core.capabilities import SensitiveDataMatch, SensitiveDataReport

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.6
GENERIC_TOKEN = "[PII REDACTED]"

_REDACTION_TOKENS: dict[str, str] = {
    "SSN": "[SSN REDACTED]",
    "EMAIL": "[EMAIL REDACTED]",
    "PHONE": "[PHONE REDACTED]",
    "CREDIT_CARD": "[CREDIT CARD REDACTED]",
    "STUDENT_ID": "[STUDENT ID REDACTED]",
    "DATE_OF_BIRTH": "[DOB REDACTED]",
    "BANK_ACCOUNT": "[BANK ACCOUNT REDACTED]",
}

_DASHED_SSN = re.compile(r"^\d{3}-\d{2}-\d{4}$")
_PAREN_PHONE = re.compile(r"^\(\d{3}\)\s?\d{3}-\d{4}$")


def luhn_valid(number: str) -> bool:
    """Return ``True`` if the digits in *number* pass the Luhn checksum."""
    digits = [int(c) for c in number if c.isdigit()]
    if not digits:
        return False
    total = 0
    for i, digit in enumerate(reversed(digits)):
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _score(entry: PatternEntry, matched: str) -> float:
    if entry.name == "SSN":
        return 0.95 if _DASHED_SSN.match(matched) else entry.confidence
    if entry.name == "PHONE":
        return 0.9 if _PAREN_PHONE.match(matched) else entry.confidence
    if entry.name == "CREDIT_CARD":
        return 0.95 if luhn_valid(matched) else entry.confidence
    return entry.confidence


def _is_placeholder(category: str, matched: str) -> bool:
    if category == "SSN" and matched == "000-00-0000":
        return True
    if category == "PHONE" and matched.lstrip("(").startswith("555"):
        return True
    if category == "EMAIL" and "example.com" in matched.lower():
        return True
    return False


class PatternSensitiveDataDetector:
    """Stateless regex-based sensitive-data detector.

    Args:
        patterns: Explicit pattern list.  When ``None`` the built-in US set is
            loaded, plus *custom_patterns_path* if given.
        custom_patterns_path: JSON custom-pattern file merged with the
            built-ins.  Ignored when *patterns* is supplied.
        redact: Whether to produce ``redacted_text`` in the report.
    """

    def __init__(
        self,
        patterns: Sequence[PatternEntry] | None = None,
        custom_patterns_path: str | Path | None = None,
        *,
        redact: bool = True,
    ) -> None:
        if patterns is not None:
            self._patterns: list[PatternEntry] = list(patterns)
        else:
            self._patterns = load_patterns(custom_patterns_path)
        self._redact = redact

        logger.debug(
            "PatternSensitiveDataDetector initialised with %d pattern(s): %s",
            len(self._patterns),
            [p.name for p in self._patterns],
        )

    # ------------------------------------------------------------------
    # Core detection
    # ------------------------------------------------------------------

    def detect(self, text: str) -> list[SensitiveDataMatch]:
        """Run every pattern over *text* and return the accepted matches.

        Matches from different patterns that overlap are all reported.
        Empty text produces no matches.
        """
        if not text:
            return []

        matches: list[SensitiveDataMatch] = []
        for entry in self._patterns:
            for m in entry.regex.finditer(text):
                matched = m.group()
                if _is_placeholder(entry.name, matched):
                    continue
                confidence = _score(entry, matched)
                if confidence <= MIN_CONFIDENCE:
                    continue
                matches.append(
                    SensitiveDataMatch(
                        type=entry.name,
                        location=(m.start(), m.end()),
                        confidence=confidence,
                        severity=entry.severity,
                    )
                )
        return matches

    def redact(self, text: str, matches: Sequence[SensitiveDataMatch]) -> str:
        """Return *text* with every match span replaced by its token."""
        if not matches:
            return text

        spans = sorted((m.location[0], m.location[1], m.type) for m in matches)
        merged: list[tuple[int, int, str]] = [spans[0]]
        for start, end, category in spans[1:]:
            prev_start, prev_end, prev_category = merged[-1]
            if start <= prev_end:
                token_category = prev_category if prev_category == category else ""
                merged[-1] = (prev_start, max(prev_end, end), token_category)
            else:
                merged.append((start, end, category))

        redacted = text
        for start, end, category in reversed(merged):
            token = _REDACTION_TOKENS.get(category, GENERIC_TOKEN)
            redacted = redacted[:start] + token + redacted[end:]
        return redacted

    # ------------------------------------------------------------------
    # Pipeline integration
    # ------------------------------------------------------------------

    async def scan(self, text: str) -> SensitiveDataReport:
        """Detect sensitive data in *text* (``SensitiveDataDetector`` contract)."""
        matches = self.detect(text)
        redacted = self.redact(text, matches) if self._redact else None

        logger.info(
            "Sensitive-data scan complete: matches=%d categories=%s",
            len(matches),
            sorted({m.type for m in matches}),
        )
        return SensitiveDataReport(matches=tuple(matches), redacted_text=redacted)
