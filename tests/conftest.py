"""Shared pytest configuration and fixtures for docassess tests.

Collaborator fakes are plain ``MagicMock`` objects whose stage methods are
``AsyncMock`` instances, so each test can override a return value or a
side effect for the one stage it cares about.
"""
from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from docassess.config import get_settings
from docassess.core.capabilities import (
    ArtifactPack,
    ControlMapping,
    ExtractedText,
    GeneratedArtifact,
    MalwareScanOutcome,
    SensitiveDataReport,
)
from docassess.core.processing_context import ProcessingContext
from docassess.core.stages import Collaborators

EPOCH = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)

DOCUMENT_TEXT = "Springfield District Acceptable Use Policy for staff and students."


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def document(tmp_path: Path) -> Path:
    path = tmp_path / "policy.txt"
    path.write_text(DOCUMENT_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def make_context(document: Path) -> Callable[..., ProcessingContext]:
    def _make(**overrides: object) -> ProcessingContext:
        fields: dict[str, object] = {
            "upload_id": "u1",
            "file_path": str(document),
            "user_id": "user-7",
            "institution_id": "inst-3",
            "document_type": "policy",
        }
        fields.update(overrides)
        return ProcessingContext(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: EPOCH


@pytest.fixture
def ticking_clock() -> Callable[[], datetime]:
    """Clock that advances one second per call."""
    counter = itertools.count()
    return lambda: EPOCH + timedelta(seconds=next(counter))


@pytest.fixture
def collaborators() -> Collaborators:
    """Seven collaborators that succeed with a clean, gap-free document."""
    scanner = MagicMock()
    scanner.scan = AsyncMock(return_value=MalwareScanOutcome(infected=False, engine="fake"))

    extractor = MagicMock()
    extractor.extract = AsyncMock(return_value=ExtractedText(text=DOCUMENT_TEXT))

    detector = MagicMock()
    detector.scan = AsyncMock(return_value=SensitiveDataReport())

    mapper = MagicMock()
    mapper.map = AsyncMock(
        return_value=[ControlMapping(control="FERPA-99.31", framework="FERPA", confidence=0.9)]
    )

    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(return_value=[])

    redliner = MagicMock()
    redliner.redline = AsyncMock(return_value=[])

    generator = MagicMock()
    generator.generate = AsyncMock(
        return_value=ArtifactPack(artifacts=(GeneratedArtifact(id="a1", type="gap_report"),))
    )

    return Collaborators(
        malware_scanner=scanner,
        text_extractor=extractor,
        sensitive_data_detector=detector,
        framework_mapper=mapper,
        gap_analyzer=analyzer,
        policy_redliner=redliner,
        artifact_generator=generator,
    )
