"""Pydantic models for serialising processing results."""

from docassess.schemas.processing import (
    ProcessingResultSchema,
    ProcessingSummarySchema,
    StageStatusSchema,
)

__all__ = [
    "ProcessingResultSchema",
    "ProcessingSummarySchema",
    "StageStatusSchema",
]
