"""Result types for the document processing pipeline.

:class:`ProcessingResult` is the only thing
:meth:`~docassess.core.pipeline.DocumentPipeline.process` returns.  While a run
is in progress the per-stage records are held by a :class:`StageTracker`,
which enforces the per-stage state machine::

    pending -> processing -> completed
                          -> failed

``completed`` and ``failed`` are terminal.  Only one stage may be
``processing`` at a time, and a stage may not start before every earlier
stage has completed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from docassess.core.errors import StageTransitionError


class StageName(str, Enum):
    """Pipeline stages.  Declaration order is execution order."""

    VIRUS_SCAN = "virus_scan"
    TEXT_EXTRACTION = "text_extraction"
    PII_DETECTION = "pii_detection"
    FRAMEWORK_MAPPING = "framework_mapping"
    GAP_ANALYSIS = "gap_analysis"
    POLICY_REDLINING = "policy_redlining"
    ARTIFACT_GENERATION = "artifact_generation"


STAGE_ORDER: tuple[StageName, ...] = tuple(StageName)


class StageState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StageState.COMPLETED, StageState.FAILED)


@dataclass(frozen=True)
class StageStatus:
    """Status record of one stage.

    Attributes:
        status: Current state.
        started_at: When the stage entered ``processing``.
        completed_at: When the stage reached a terminal state.
        error: Failure message; only set when ``status`` is ``failed``.
    """

    status: StageState = StageState.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessingSummary:
    """Aggregated gap counts and the derived compliance score."""

    critical_gaps: int = 0
    total_gaps: int = 0
    compliance_score: int = 0


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one pipeline run.

    Attributes:
        success: ``True`` only when every stage completed.
        stages: Stage name -> :class:`StageStatus`, in execution order.  Stages
            that were never attempted have no entry.
        artifact_ids: Ids of the generated artifacts.  Empty unless
            ``artifact_generation`` completed.
        summary: Gap counts and compliance score.  All zero on failure.
    """

    success: bool
    stages: Mapping[str, StageStatus]
    artifact_ids: tuple[str, ...] = ()
    summary: ProcessingSummary = field(default_factory=ProcessingSummary)

    @property
    def failed_stage(self) -> str | None:
        """Name of the stage that failed, if any."""
        for name, status in self.stages.items():
            if status.status is StageState.FAILED:
                return name
        return None


class StageTracker:
    """Holds the stage records of one in-progress run.

    Entries are created lazily by :meth:`start`, so stages that were never
    reached stay absent from the final ``stages`` map.
    """

    def __init__(self) -> None:
        self._stages: dict[str, StageStatus] = {}

    @property
    def current(self) -> StageName | None:
        """The stage currently ``processing``, if any."""
        for name, status in self._stages.items():
            if status.status is StageState.PROCESSING:
                return StageName(name)
        return None

    def start(self, stage: StageName, at: datetime) -> None:
        if self.current is not None:
            raise StageTransitionError(
                f"cannot start '{stage.value}' while '{self.current.value}' is processing"
            )
        existing = self._stages.get(stage.value)
        if existing is not None and existing.status is not StageState.PENDING:
            raise StageTransitionError(
                f"stage '{stage.value}' is already {existing.status.value}"
            )
        for earlier in STAGE_ORDER[: STAGE_ORDER.index(stage)]:
            record = self._stages.get(earlier.value)
            if record is None or record.status is not StageState.COMPLETED:
                raise StageTransitionError(
                    f"stage '{stage.value}' cannot start before '{earlier.value}' completes"
                )
        self._stages[stage.value] = StageStatus(
            status=StageState.PROCESSING, started_at=at
        )

    def complete(self, stage: StageName, at: datetime) -> None:
        record = self._require_processing(stage)
        self._stages[stage.value] = dataclasses.replace(
            record, status=StageState.COMPLETED, completed_at=at
        )

    def fail(self, stage: StageName, error: str, at: datetime) -> None:
        record = self._require_processing(stage)
        self._stages[stage.value] = dataclasses.replace(
            record, status=StageState.FAILED, completed_at=at, error=error
        )

    def snapshot(self) -> Mapping[str, StageStatus]:
        """Read-only copy of the stage records."""
        return MappingProxyType(dict(self._stages))

    def _require_processing(self, stage: StageName) -> StageStatus:
        record = self._stages.get(stage.value)
        if record is None or record.status is not StageState.PROCESSING:
            state = "absent" if record is None else record.status.value
            raise StageTransitionError(
                f"stage '{stage.value}' is {state}, expected processing"
            )
        return record
