"""Stage descriptors for the document processing pipeline.

The fixed stage sequence is data, not control flow: :func:`build_stages`
returns one :class:`StageDescriptor` per :class:`~docassess.core.result.StageName`
in execution order, and the orchestrator walks that tuple uniformly.

Every descriptor turns its collaborator call into a :class:`StageOutcome`.
A collaborator exception, or a verdict the stage rejects on policy grounds
(an infected malware scan), becomes ``StageOutcome.failure`` tagged with the
descriptor's own stage name.  Failure attribution is therefore structural: the
orchestrator never has to work out afterwards which stage was in flight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

from docassess.core.capabilities import (
    ArtifactBundle,
    ArtifactGenerator,
    ArtifactPack,
    ControlMapping,
    ExtractedText,
    FrameworkMapper,
    GapAnalyzer,
    GapRecord,
    GapSummary,
    MalwareScanner,
    MalwareScanOutcome,
    PolicyDocument,
    PolicyRedliner,
    RedlineRecord,
    SensitiveDataDetector,
    SensitiveDataReport,
    TextExtractor,
)
from docassess.core.entities import extract_entities
from docassess.core.processing_context import ProcessingContext
from docassess.core.result import ProcessingSummary, StageName
from docassess.core.summary import calculate_summary

logger = logging.getLogger(__name__)

T = TypeVar("T")

VIRUS_DETECTED_MESSAGE = "virus detected"


def describe_error(exc: BaseException) -> str:
    """Message recorded for a failed stage."""
    return str(exc) or type(exc).__name__


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Result of invoking one stage: either a value or an error message."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StageOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "StageOutcome[T]":
        return cls(error=error)


@dataclass
class PriorOutputs:
    """Outputs accumulated by completed stages during one run.

    Created fresh per invocation and owned by the orchestrator.
    """

    file_bytes: bytes
    malware_scan: MalwareScanOutcome | None = None
    extracted: ExtractedText | None = None
    sensitive_data: SensitiveDataReport | None = None
    entities: dict[str, list[str]] = field(default_factory=dict)
    control_mappings: tuple[ControlMapping, ...] = ()
    gaps: tuple[GapRecord, ...] = ()
    summary: ProcessingSummary = field(default_factory=ProcessingSummary)
    redlines: tuple[RedlineRecord, ...] = ()
    artifact_pack: ArtifactPack | None = None
    artifact_ids: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Extracted text; empty until extraction has completed."""
        return self.extracted.text if self.extracted is not None else ""

    @property
    def analysis_text(self) -> str:
        """Text read by gap analysis and redlining.

        The redacted text when the detector produced one, else the raw text.
        """
        if self.sensitive_data is not None and self.sensitive_data.redacted_text is not None:
            return self.sensitive_data.redacted_text
        return self.text


@dataclass(frozen=True)
class StageDescriptor:
    """One named pipeline stage.

    Attributes:
        name: The stage this descriptor runs.
        run: Async callable ``(context, prior) -> output`` calling the
            collaborator.
        store: Saves a successful output into :class:`PriorOutputs`.
        reject: Optional policy check on a successful output.  Returns a
            failure message to fail the stage, or ``None`` to accept it.
    """

    name: StageName
    run: Callable[[ProcessingContext, PriorOutputs], Awaitable[Any]]
    store: Callable[[PriorOutputs, Any], None]
    reject: Callable[[Any], str | None] | None = None

    async def invoke(self, context: ProcessingContext, prior: PriorOutputs) -> StageOutcome[Any]:
        try:
            value = await self.run(context, prior)
        except Exception as exc:
            logger.debug(
                "Stage '%s' collaborator raised: upload_id=%s error=%r",
                self.name.value,
                context.upload_id,
                exc,
            )
            return StageOutcome.failure(describe_error(exc))

        if self.reject is not None:
            message = self.reject(value)
            if message is not None:
                return StageOutcome.failure(message)
        return StageOutcome.success(value)


@dataclass(frozen=True)
class Collaborators:
    """The seven capability collaborators, one per stage."""

    malware_scanner: MalwareScanner
    text_extractor: TextExtractor
    sensitive_data_detector: SensitiveDataDetector
    framework_mapper: FrameworkMapper
    gap_analyzer: GapAnalyzer
    policy_redliner: PolicyRedliner
    artifact_generator: ArtifactGenerator


def _reject_infected(outcome: MalwareScanOutcome) -> str | None:
    if outcome.infected:
        logger.warning(
            "Malware scan flagged document: engine=%s signature=%s",
            outcome.engine,
            outcome.signature,
        )
        return VIRUS_DETECTED_MESSAGE
    return None


def build_stages(
    collaborators: Collaborators,
    *,
    default_institution_type: str,
) -> tuple[StageDescriptor, ...]:
    """Return the stage descriptors in execution order."""

    async def scan(ctx: ProcessingContext, prior: PriorOutputs) -> MalwareScanOutcome:
        return await collaborators.malware_scanner.scan(prior.file_bytes)

    def store_scan(prior: PriorOutputs, value: MalwareScanOutcome) -> None:
        prior.malware_scan = value

    async def extract(ctx: ProcessingContext, prior: PriorOutputs) -> ExtractedText:
        return await collaborators.text_extractor.extract(
            ctx.file_path, file_bytes=prior.file_bytes, mime_type=ctx.mime_type
        )

    def store_extracted(prior: PriorOutputs, value: ExtractedText) -> None:
        prior.extracted = value

    async def detect(ctx: ProcessingContext, prior: PriorOutputs) -> SensitiveDataReport:
        return await collaborators.sensitive_data_detector.scan(prior.text)

    def store_sensitive(prior: PriorOutputs, value: SensitiveDataReport) -> None:
        prior.sensitive_data = value
        prior.entities = extract_entities(prior.analysis_text)

    async def map_frameworks(ctx: ProcessingContext, prior: PriorOutputs) -> list[ControlMapping]:
        institution_type = ctx.institution_type or default_institution_type
        mappings = await collaborators.framework_mapper.map(
            prior.text, ctx.document_type, institution_type
        )
        return list(mappings)

    def store_mappings(prior: PriorOutputs, value: list[ControlMapping]) -> None:
        prior.control_mappings = tuple(value)

    async def analyze(ctx: ProcessingContext, prior: PriorOutputs) -> list[GapRecord]:
        gaps = await collaborators.gap_analyzer.analyze(
            prior.analysis_text, prior.control_mappings, prior.entities
        )
        return list(gaps)

    def store_gaps(prior: PriorOutputs, value: list[GapRecord]) -> None:
        prior.gaps = tuple(value)
        prior.summary = calculate_summary(prior.gaps)

    async def redline(ctx: ProcessingContext, prior: PriorOutputs) -> list[RedlineRecord]:
        document = PolicyDocument(
            id=ctx.upload_id, content=prior.analysis_text, type=ctx.document_type
        )
        summaries = [
            GapSummary(requirement=g.requirement, status=g.gap, risk_level=g.risk_level)
            for g in prior.gaps
        ]
        return list(await collaborators.policy_redliner.redline(document, summaries))

    def store_redlines(prior: PriorOutputs, value: list[RedlineRecord]) -> None:
        prior.redlines = tuple(value)

    async def generate(ctx: ProcessingContext, prior: PriorOutputs) -> ArtifactPack:
        bundle = ArtifactBundle(
            document_id=ctx.upload_id,
            gap_analysis=prior.gaps,
            redlines=prior.redlines,
            control_mappings=prior.control_mappings,
        )
        return await collaborators.artifact_generator.generate(bundle)

    def store_pack(prior: PriorOutputs, value: ArtifactPack) -> None:
        prior.artifact_pack = value
        prior.artifact_ids = tuple(artifact.id for artifact in value.artifacts)

    return (
        StageDescriptor(StageName.VIRUS_SCAN, scan, store_scan, reject=_reject_infected),
        StageDescriptor(StageName.TEXT_EXTRACTION, extract, store_extracted),
        StageDescriptor(StageName.PII_DETECTION, detect, store_sensitive),
        StageDescriptor(StageName.FRAMEWORK_MAPPING, map_frameworks, store_mappings),
        StageDescriptor(StageName.GAP_ANALYSIS, analyze, store_gaps),
        StageDescriptor(StageName.POLICY_REDLINING, redline, store_redlines),
        StageDescriptor(StageName.ARTIFACT_GENERATION, generate, store_pack),
    )
