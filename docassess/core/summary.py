"""Compliance summary derived from gap-analysis output.

The score is a fixed linear penalty: 20 points per critical gap and 5 points
per other gap, floored at zero::

    score = max(0, 100 - (critical * 20 + (total - critical) * 5))

Downstream consumers interpret the score in bands (e.g. "proficient" at 70
and above), so the formula must not be rescaled or normalised against the
number of applicable controls.
"""

from __future__ import annotations

from typing import Iterable

from docassess.core.capabilities import GapRecord, RiskLevel
from docassess.core.result import ProcessingSummary

CRITICAL_GAP_PENALTY = 20
OTHER_GAP_PENALTY = 5
MAX_SCORE = 100


def compliance_score(critical_gaps: int, total_gaps: int) -> int:
    """Return the compliance score for the given gap counts, in ``[0, 100]``."""
    if critical_gaps < 0 or total_gaps < critical_gaps:
        raise ValueError(
            f"invalid gap counts: critical={critical_gaps} total={total_gaps}"
        )
    penalty = (
        critical_gaps * CRITICAL_GAP_PENALTY
        + (total_gaps - critical_gaps) * OTHER_GAP_PENALTY
    )
    return max(0, MAX_SCORE - penalty)


def calculate_summary(gaps: Iterable[GapRecord]) -> ProcessingSummary:
    """Summarise the full GapAnalyzer output.

    Args:
        gaps: Every gap record produced by the gap-analysis stage.

    Returns:
        :class:`~docassess.core.result.ProcessingSummary` with critical and
        total counts and the compliance score.
    """
    total = 0
    critical = 0
    for gap in gaps:
        total += 1
        if gap.risk_level == RiskLevel.CRITICAL:
            critical += 1
    return ProcessingSummary(
        critical_gaps=critical,
        total_gaps=total,
        compliance_score=compliance_score(critical, total),
    )
