"""Capability collaborator contracts for the document processing pipeline.

Each stage of :class:`~docassess.core.pipeline.DocumentPipeline` delegates its
actual work to one narrowly-scoped collaborator.  The pipeline only depends
on the protocols below, so any object with matching async methods can be
injected, no base class inheritance required.

Collaborators signal failure by raising.  The stage that called them catches
the exception and records it against its own stage name, so a misbehaving
collaborator can never crash the orchestration loop.

Collaborators receive derived data by value and must not keep references to
it once the call returns.

Default implementations for the first three contracts live in
:mod:`docassess.adapters`; the remaining four are supplied by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable


class RiskLevel(str, Enum):
    """Severity of a compliance gap."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Stage outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MalwareScanOutcome:
    """Verdict of a malware scan.

    Attributes:
        infected: ``True`` when the scanner found a threat.
        signature: Threat identifier reported by the engine, if any
            (e.g. ``"Win.Test.EICAR_HDB-1"``).
        engine: Name of the engine that produced the verdict.
    """

    infected: bool
    signature: str | None = None
    engine: str = "unknown"


@dataclass(frozen=True)
class ExtractedText:
    """Plain text extracted from the document.

    ``text`` may be empty; later stages must cope with that.
    """

    text: str
    page_count: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SensitiveDataMatch:
    """One sensitive-data hit.

    Attributes:
        type: Pattern category (e.g. ``"SSN"``, ``"EMAIL"``).
        location: ``(start, end)`` character span in the extracted text.
        confidence: Detector confidence in ``[0, 1]``.
        severity: ``"low"``, ``"medium"``, ``"high"`` or ``"critical"``.
    """

    type: str
    location: tuple[int, int]
    confidence: float
    severity: str = "medium"


@dataclass(frozen=True)
class SensitiveDataReport:
    """All sensitive-data matches for a document.

    Attributes:
        matches: Matches in detection order.
        redacted_text: The extracted text with every match replaced, or
            ``None`` when the detector does not redact.  When present it is
            what gap analysis and redlining read instead of the raw text.
    """

    matches: tuple[SensitiveDataMatch, ...] = ()
    redacted_text: str | None = None

    @property
    def has_sensitive_data(self) -> bool:
        return bool(self.matches)


@dataclass(frozen=True)
class ControlMapping:
    """A regulatory control judged applicable to the document."""

    control: str
    framework: str = ""
    confidence: float = 0.0
    applicable_sections: tuple[str, ...] = ()


@dataclass(frozen=True)
class GapRecord:
    """A discrepancy between the document and one control's requirement."""

    requirement: str
    risk_level: RiskLevel | str
    current_state: str = ""
    gap: str = ""
    framework: str = ""
    remediation: str = ""
    section: str = ""


@dataclass(frozen=True)
class GapSummary:
    """Condensed gap handed to the policy redliner."""

    requirement: str
    status: str
    risk_level: RiskLevel | str


@dataclass(frozen=True)
class PolicyDocument:
    """The document as seen by the policy redliner."""

    id: str
    content: str
    type: str


@dataclass(frozen=True)
class RedlineRecord:
    """A suggested edit to one section of the policy."""

    section: str
    suggested_text: str
    original_text: str = ""
    rationale: str = ""
    framework: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class ArtifactBundle:
    """Everything the artifact generator needs to render deliverables."""

    document_id: str
    gap_analysis: tuple[GapRecord, ...]
    redlines: tuple[RedlineRecord, ...]
    control_mappings: tuple[ControlMapping, ...]


@dataclass(frozen=True)
class GeneratedArtifact:
    """A deliverable produced at the end of the pipeline."""

    id: str
    type: str = ""
    title: str = ""
    format: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ArtifactPack:
    artifacts: tuple[GeneratedArtifact, ...] = ()


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class MalwareScanner(Protocol):
    async def scan(self, data: bytes) -> MalwareScanOutcome:
        """Scan raw document bytes.

        An engine that cannot reach a verdict must raise rather than report
        ``infected=False``.
        """
        ...


@runtime_checkable
class TextExtractor(Protocol):
    async def extract(
        self,
        file_path: str,
        *,
        file_bytes: bytes,
        mime_type: str | None = None,
    ) -> ExtractedText:
        """Extract text from the document at *file_path*.

        *file_bytes* holds the bytes the pipeline already read; implementations
        use them instead of reading the path a second time.  *file_path* is
        still useful for format detection by extension.
        """
        ...


@runtime_checkable
class SensitiveDataDetector(Protocol):
    async def scan(self, text: str) -> SensitiveDataReport:
        ...


@runtime_checkable
class FrameworkMapper(Protocol):
    async def map(
        self,
        text: str,
        document_type: str,
        institution_type: str,
    ) -> Sequence[ControlMapping]:
        """Return the controls that apply to the document.  May be empty."""
        ...


@runtime_checkable
class GapAnalyzer(Protocol):
    async def analyze(
        self,
        text: str,
        control_mappings: Sequence[ControlMapping],
        entities: Mapping[str, Sequence[str]],
    ) -> Sequence[GapRecord]:
        """Return the gaps found.  Must return ``[]`` for zero mappings."""
        ...


@runtime_checkable
class PolicyRedliner(Protocol):
    async def redline(
        self,
        document: PolicyDocument,
        gap_summaries: Sequence[GapSummary],
    ) -> Sequence[RedlineRecord]:
        ...


@runtime_checkable
class ArtifactGenerator(Protocol):
    async def generate(self, bundle: ArtifactBundle) -> ArtifactPack:
        ...
