"""Unit tests for docassess/schemas/processing.py."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from docassess.core.result import (
    ProcessingResult,
    ProcessingSummary,
    StageState,
    StageStatus,
)
from docassess.schemas.processing import ProcessingResultSchema, ProcessingSummarySchema

T0 = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)


def _result() -> ProcessingResult:
    return ProcessingResult(
        success=False,
        stages={
            "virus_scan": StageStatus(
                status=StageState.COMPLETED, started_at=T0, completed_at=T0
            ),
            "text_extraction": StageStatus(
                status=StageState.FAILED, started_at=T0, completed_at=T0, error="corrupt"
            ),
        },
    )


def test_camel_case_payload() -> None:
    payload = ProcessingResultSchema.from_result(_result()).model_dump(
        by_alias=True, exclude_none=True, mode="json"
    )

    assert payload["success"] is False
    assert list(payload["stages"]) == ["virus_scan", "text_extraction"]
    assert payload["stages"]["virus_scan"]["status"] == "completed"
    assert payload["stages"]["virus_scan"]["completedAt"].startswith("2026-10-19T09:00:00")
    assert "error" not in payload["stages"]["virus_scan"]
    assert payload["stages"]["text_extraction"]["error"] == "corrupt"
    assert payload["artifactIds"] == []
    assert payload["summary"] == {"criticalGaps": 0, "totalGaps": 0, "complianceScore": 0}


def test_summary_and_artifacts() -> None:
    result = ProcessingResult(
        success=True,
        stages={},
        artifact_ids=("a1",),
        summary=ProcessingSummary(critical_gaps=0, total_gaps=1, compliance_score=95),
    )
    schema = ProcessingResultSchema.from_result(result)

    assert schema.artifact_ids == ["a1"]
    assert schema.summary.compliance_score == 95


def test_accepts_camel_case_input() -> None:
    schema = ProcessingSummarySchema.model_validate(
        {"criticalGaps": 1, "totalGaps": 2, "complianceScore": 75}
    )
    assert schema.total_gaps == 2


def test_score_out_of_range_rejected() -> None:
    with pytest.raises(ValidationError):
        ProcessingSummarySchema(compliance_score=101)
