"""Exception types raised inside the document processing pipeline.

None of these escape :meth:`~docassess.core.pipeline.DocumentPipeline.process`;
they are recorded against the failing stage of the
:class:`~docassess.core.result.ProcessingResult`.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors raised by the pipeline machinery itself."""


class DocumentReadError(PipelineError):
    """Raised when the document bytes cannot be read from ``file_path``.

    Attributes:
        file_path: The path that was being read.
    """

    def __init__(self, message: str, *, file_path: str) -> None:
        super().__init__(message)
        self.file_path = file_path


class StageTransitionError(PipelineError):
    """Raised on an illegal stage state change (e.g. completing a pending stage,
    or starting a stage while another is still processing)."""
