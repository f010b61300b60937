"""Pydantic schemas for serialising processing results.

The pipeline itself persists nothing.  Callers that store a
:class:`~docassess.core.result.ProcessingResult` (e.g. on the upload record)
use :class:`ProcessingResultSchema` to render it in the camelCase shape the
status surface reads::

    {
      "success": true,
      "stages": {
        "virus_scan": {"status": "completed", "completedAt": "2026-10-19T09:00:00Z"},
        ...
      },
      "artifactIds": ["a1"],
      "summary": {"criticalGaps": 0, "totalGaps": 1, "complianceScore": 95}
    }

Usage::

    from docassess.schemas.processing import ProcessingResultSchema

    payload = ProcessingResultSchema.from_result(result).model_dump(
        by_alias=True, exclude_none=True, mode="json"
    )
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docassess.core.result import ProcessingResult, ProcessingSummary, StageStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class StageStatusSchema(_CamelModel):
    status: Literal["pending", "processing", "completed", "failed"]
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_status(cls, status: StageStatus) -> "StageStatusSchema":
        return cls(
            status=status.status.value,
            started_at=status.started_at,
            completed_at=status.completed_at,
            error=status.error,
        )


class ProcessingSummarySchema(_CamelModel):
    critical_gaps: int = Field(default=0, ge=0)
    total_gaps: int = Field(default=0, ge=0)
    compliance_score: int = Field(default=0, ge=0, le=100)

    @classmethod
    def from_summary(cls, summary: ProcessingSummary) -> "ProcessingSummarySchema":
        return cls(
            critical_gaps=summary.critical_gaps,
            total_gaps=summary.total_gaps,
            compliance_score=summary.compliance_score,
        )


class ProcessingResultSchema(_CamelModel):
    """Wire representation of a :class:`ProcessingResult`."""

    success: bool
    stages: dict[str, StageStatusSchema] = Field(default_factory=dict)
    artifact_ids: list[str] = Field(default_factory=list)
    summary: ProcessingSummarySchema = Field(default_factory=ProcessingSummarySchema)

    @classmethod
    def from_result(cls, result: ProcessingResult) -> "ProcessingResultSchema":
        return cls(
            success=result.success,
            stages={
                name: StageStatusSchema.from_status(status)
                for name, status in result.stages.items()
            },
            artifact_ids=list(result.artifact_ids),
            summary=ProcessingSummarySchema.from_summary(result.summary),
        )
