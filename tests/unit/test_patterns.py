"""Unit tests for the built-in pattern library and custom pattern loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from docassess.adapters.patterns import get_builtin_patterns, load_patterns

BUILTIN_NAMES = [
    "SSN",
    "EMAIL",
    "PHONE",
    "CREDIT_CARD",
    "STUDENT_ID",
    "DATE_OF_BIRTH",
    "BANK_ACCOUNT",
]


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "patterns.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_builtin_patterns_in_canonical_order() -> None:
    assert [p.name for p in get_builtin_patterns()] == BUILTIN_NAMES


def test_builtin_list_is_a_copy() -> None:
    patterns = get_builtin_patterns()
    patterns.clear()
    assert len(get_builtin_patterns()) == len(BUILTIN_NAMES)


def test_builtin_severities() -> None:
    severities = {p.name: p.severity for p in get_builtin_patterns()}
    assert severities["SSN"] == "critical"
    assert severities["EMAIL"] == "medium"
    assert severities["STUDENT_ID"] == "high"


def test_patterns_are_case_insensitive() -> None:
    student_id = next(p for p in get_builtin_patterns() if p.name == "STUDENT_ID")
    assert student_id.regex.search("STUDENT ID 123456")


def test_no_config_returns_builtins() -> None:
    assert [p.name for p in load_patterns(None)] == BUILTIN_NAMES


def test_missing_config_falls_back(tmp_path: Path) -> None:
    assert [p.name for p in load_patterns(tmp_path / "absent.json")] == BUILTIN_NAMES


def test_invalid_json_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "patterns.json"
    path.write_text("[{", encoding="utf-8")
    assert len(load_patterns(path)) == len(BUILTIN_NAMES)


def test_non_array_root_falls_back(tmp_path: Path) -> None:
    path = _write(tmp_path, {"name": "X", "pattern": "x", "severity": "low"})
    assert len(load_patterns(path)) == len(BUILTIN_NAMES)


def test_custom_patterns_are_appended(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        [
            {"name": "EMPLOYEE_ID", "pattern": r"EMP-\d{6}", "severity": "medium"},
            {"name": "CASE_NO", "pattern": r"CASE-\d+", "severity": "high", "confidence": 0.95},
        ],
    )
    patterns = load_patterns(str(path))

    assert [p.name for p in patterns] == BUILTIN_NAMES + ["EMPLOYEE_ID", "CASE_NO"]
    assert patterns[-2].confidence == 0.8
    assert patterns[-1].confidence == 0.95
    assert patterns[-2].regex.search("emp-123456")


@pytest.mark.parametrize(
    "entry",
    [
        "not an object",
        {"pattern": "x", "severity": "low"},
        {"name": "X", "severity": "low"},
        {"name": "X", "pattern": "x", "severity": "urgent"},
        {"name": "X", "pattern": "(", "severity": "low"},
        {"name": "X", "pattern": "x", "severity": "low", "confidence": 1.5},
        {"name": "X", "pattern": "x", "severity": "low", "confidence": True},
        {"name": "X", "pattern": "x", "severity": "low", "confidence": "high"},
    ],
)
def test_malformed_entries_are_skipped(tmp_path: Path, entry: object) -> None:
    path = _write(tmp_path, [entry, {"name": "OK", "pattern": "ok", "severity": "low"}])
    assert [p.name for p in load_patterns(path)] == BUILTIN_NAMES + ["OK"]
