"""Progress view of a :class:`~docassess.core.result.ProcessingResult`.

Callers that expose an upload status endpoint need a current-stage label, a
percentage and an error message.  :func:`snapshot_progress` derives all three
from the ``stages`` map alone, so it works equally on a finished result and on
a partially built one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from docassess.core.result import STAGE_ORDER, ProcessingResult, StageState, StageStatus

COMPLETE_LABEL = "complete"
PENDING_LABEL = "pending"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Status-surface view of one run.

    Attributes:
        status: ``"pending"``, ``"processing"``, ``"completed"`` or ``"failed"``.
        current_stage: Stage in flight or the stage that failed;
            ``"complete"`` once every stage has completed.
        progress: Percentage of stages completed, ``0``-``100``.
        error_message: The failed stage's error, else ``None``.
    """

    status: str
    current_stage: str
    progress: int
    error_message: str | None = None


def snapshot_progress(
    source: ProcessingResult | Mapping[str, StageStatus],
) -> ProgressSnapshot:
    """Summarise stage records into a :class:`ProgressSnapshot`."""
    stages = source.stages if isinstance(source, ProcessingResult) else source

    completed = 0
    for name in STAGE_ORDER:
        record = stages.get(name.value)
        if record is None:
            break
        if record.status is StageState.FAILED:
            return ProgressSnapshot(
                status=StageState.FAILED.value,
                current_stage=name.value,
                progress=_percent(completed),
                error_message=record.error,
            )
        if record.status is StageState.COMPLETED:
            completed += 1
            continue
        return ProgressSnapshot(
            status=StageState.PROCESSING.value,
            current_stage=name.value,
            progress=_percent(completed),
        )

    if completed == len(STAGE_ORDER):
        return ProgressSnapshot(
            status=StageState.COMPLETED.value,
            current_stage=COMPLETE_LABEL,
            progress=100,
        )
    if completed == 0:
        return ProgressSnapshot(
            status=StageState.PENDING.value,
            current_stage=PENDING_LABEL,
            progress=0,
        )
    # Between stages: the next one has not been materialised yet.
    return ProgressSnapshot(
        status=StageState.PROCESSING.value,
        current_stage=STAGE_ORDER[completed].value,
        progress=_percent(completed),
    )


def _percent(completed: int) -> int:
    return (completed * 100) // len(STAGE_ORDER)
