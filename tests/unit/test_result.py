"""Unit tests for the stage state machine in docassess/core/result.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from docassess.core.errors import StageTransitionError
from docassess.core.result import (
    STAGE_ORDER,
    ProcessingResult,
    StageName,
    StageState,
    StageStatus,
    StageTracker,
)

T0 = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(seconds=1)


def _run_through(tracker: StageTracker, stages: list[StageName]) -> None:
    for stage in stages:
        tracker.start(stage, T0)
        tracker.complete(stage, T1)


def test_stage_order_matches_declaration() -> None:
    assert [s.value for s in STAGE_ORDER] == [
        "virus_scan",
        "text_extraction",
        "pii_detection",
        "framework_mapping",
        "gap_analysis",
        "policy_redlining",
        "artifact_generation",
    ]


@pytest.mark.parametrize(
    "state,terminal",
    [
        (StageState.PENDING, False),
        (StageState.PROCESSING, False),
        (StageState.COMPLETED, True),
        (StageState.FAILED, True),
    ],
)
def test_terminal_states(state: StageState, terminal: bool) -> None:
    assert state.is_terminal is terminal


def test_default_status_is_pending() -> None:
    status = StageStatus()
    assert status.status is StageState.PENDING
    assert status.completed_at is None
    assert status.error is None


class TestStageTracker:
    def test_new_tracker_is_empty(self) -> None:
        tracker = StageTracker()
        assert tracker.current is None
        assert dict(tracker.snapshot()) == {}

    def test_start_marks_processing(self) -> None:
        tracker = StageTracker()
        tracker.start(StageName.VIRUS_SCAN, T0)

        record = tracker.snapshot()["virus_scan"]
        assert record.status is StageState.PROCESSING
        assert record.started_at == T0
        assert record.completed_at is None
        assert tracker.current is StageName.VIRUS_SCAN

    def test_complete_sets_timestamp(self) -> None:
        tracker = StageTracker()
        _run_through(tracker, [StageName.VIRUS_SCAN])

        record = tracker.snapshot()["virus_scan"]
        assert record.status is StageState.COMPLETED
        assert record.started_at == T0
        assert record.completed_at == T1
        assert tracker.current is None

    def test_fail_records_error(self) -> None:
        tracker = StageTracker()
        tracker.start(StageName.VIRUS_SCAN, T0)
        tracker.fail(StageName.VIRUS_SCAN, "virus detected", T1)

        record = tracker.snapshot()["virus_scan"]
        assert record.status is StageState.FAILED
        assert record.error == "virus detected"
        assert record.completed_at == T1

    def test_cannot_start_while_another_is_processing(self) -> None:
        tracker = StageTracker()
        tracker.start(StageName.VIRUS_SCAN, T0)
        with pytest.raises(StageTransitionError, match="is processing"):
            tracker.start(StageName.TEXT_EXTRACTION, T0)

    def test_cannot_skip_a_stage(self) -> None:
        tracker = StageTracker()
        _run_through(tracker, [StageName.VIRUS_SCAN])
        with pytest.raises(StageTransitionError, match="text_extraction"):
            tracker.start(StageName.PII_DETECTION, T0)

    def test_cannot_start_after_earlier_failure(self) -> None:
        tracker = StageTracker()
        tracker.start(StageName.VIRUS_SCAN, T0)
        tracker.fail(StageName.VIRUS_SCAN, "boom", T1)
        with pytest.raises(StageTransitionError):
            tracker.start(StageName.TEXT_EXTRACTION, T0)

    def test_terminal_stage_cannot_restart(self) -> None:
        tracker = StageTracker()
        _run_through(tracker, [StageName.VIRUS_SCAN])
        with pytest.raises(StageTransitionError, match="already completed"):
            tracker.start(StageName.VIRUS_SCAN, T0)

    def test_cannot_complete_unstarted_stage(self) -> None:
        tracker = StageTracker()
        with pytest.raises(StageTransitionError, match="absent"):
            tracker.complete(StageName.VIRUS_SCAN, T1)

    def test_cannot_fail_completed_stage(self) -> None:
        tracker = StageTracker()
        _run_through(tracker, [StageName.VIRUS_SCAN])
        with pytest.raises(StageTransitionError, match="completed"):
            tracker.fail(StageName.VIRUS_SCAN, "late", T1)

    def test_snapshot_preserves_execution_order(self) -> None:
        tracker = StageTracker()
        _run_through(tracker, list(STAGE_ORDER))
        assert list(tracker.snapshot()) == [s.value for s in STAGE_ORDER]

    def test_snapshot_is_read_only_copy(self) -> None:
        tracker = StageTracker()
        snapshot = tracker.snapshot()
        with pytest.raises(TypeError):
            snapshot["virus_scan"] = StageStatus()  # type: ignore[index]
        tracker.start(StageName.VIRUS_SCAN, T0)
        assert "virus_scan" not in snapshot


class TestProcessingResult:
    def test_failed_stage_is_reported(self) -> None:
        result = ProcessingResult(
            success=False,
            stages={
                "virus_scan": StageStatus(status=StageState.COMPLETED, completed_at=T0),
                "text_extraction": StageStatus(
                    status=StageState.FAILED, completed_at=T1, error="corrupt"
                ),
            },
        )
        assert result.failed_stage == "text_extraction"

    def test_no_failed_stage_on_success(self) -> None:
        result = ProcessingResult(success=True, stages={})
        assert result.failed_stage is None
        assert result.artifact_ids == ()
        assert result.summary.compliance_score == 0
