"""DocumentPipeline — orchestration of the docassess processing pipeline.

:class:`DocumentPipeline` drives one uploaded document through seven stages in
a fixed order:

1. **virus_scan**          — malware scan of the raw bytes; an infected verdict
   fails the stage with ``"virus detected"``
2. **text_extraction**     — plain text from the document
3. **pii_detection**       — sensitive-data matches, optional redaction, and
   entity recognition
4. **framework_mapping**   — applicable regulatory controls
5. **gap_analysis**        — gaps between the document and those controls
6. **policy_redlining**    — suggested policy edits for the gaps
7. **artifact_generation** — downstream deliverables

The document bytes are read exactly once, before the first stage.  Each stage
runs inside a named OpenTelemetry span.  The first failed stage halts the
run; completed stage records are kept for diagnostics and no later stage is
attempted.

**Never-raise contract**: :meth:`DocumentPipeline.process` always returns a
:class:`~docassess.core.result.ProcessingResult`.  Collaborator errors are
captured by the stage descriptors; anything else that goes wrong inside the
loop is caught at the outermost boundary and recorded against whichever stage
was ``processing`` at the time.

Usage::

    from docassess.core.pipeline import build_pipeline
    from docassess.core.processing_context import ProcessingContext

    pipeline = build_pipeline(
        framework_mapper=mapper,
        gap_analyzer=analyzer,
        policy_redliner=redliner,
        artifact_generator=generator,
    )
    result = await pipeline.process(
        ProcessingContext(
            upload_id="u1",
            file_path="/srv/uploads/u1.pdf",
            user_id="user-7",
            institution_id="inst-3",
            document_type="policy",
        )
    )
    print(result.success, result.summary.compliance_score)
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from docassess.config import Settings, get_settings
from docassess.core.capabilities import (
    ArtifactGenerator,
    FrameworkMapper,
    GapAnalyzer,
    MalwareScanner,
    PolicyRedliner,
    SensitiveDataDetector,
    TextExtractor,
)
from docassess.core.errors import DocumentReadError
from docassess.core.processing_context import ProcessingContext
from docassess.core.result import (
    ProcessingResult,
    StageName,
    StageTracker,
)
from docassess.core.stages import (
    Collaborators,
    PriorOutputs,
    StageDescriptor,
    build_stages,
    describe_error,
)

logger = logging.getLogger(__name__)

# OTel tracer, one per module, reused across pipeline runs.
tracer = trace.get_tracer(
    "docassess.pipeline",
    schema_url="https://opentelemetry.io/schemas/1.11.0",
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentPipeline:
    """Runs the seven-stage document pipeline.

    All collaborators are injected so tests can substitute fakes per stage.
    The instance holds no per-run state: concurrent ``process`` calls for
    different documents do not share anything mutable.

    Args:
        stages: Stage descriptors in execution order, normally from
            :func:`~docassess.core.stages.build_stages`.
        max_document_bytes: Documents larger than this fail ``virus_scan``
            without being scanned.  ``None`` disables the limit.
        clock: Source of stage timestamps.  Defaults to :func:`utc_now`.
        on_close: Callbacks run once by :meth:`close`, releasing resources
            (thread pools) of adapters the pipeline created itself.
    """

    def __init__(
        self,
        stages: Sequence[StageDescriptor],
        *,
        max_document_bytes: int | None = None,
        clock: Clock = utc_now,
        on_close: Sequence[Callable[[], None]] = (),
    ) -> None:
        self._stages = tuple(stages)
        self._max_document_bytes = max_document_bytes
        self._clock = clock
        self._on_close = list(on_close)

    def __enter__(self) -> "DocumentPipeline":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def close(self) -> None:
        """Release resources owned by the pipeline.  Safe to call twice."""
        callbacks, self._on_close = self._on_close, []
        for callback in callbacks:
            callback()

    @classmethod
    def from_collaborators(
        cls,
        collaborators: Collaborators,
        *,
        default_institution_type: str = "K12",
        max_document_bytes: int | None = None,
        clock: Clock = utc_now,
        on_close: Sequence[Callable[[], None]] = (),
    ) -> "DocumentPipeline":
        return cls(
            build_stages(collaborators, default_institution_type=default_institution_type),
            max_document_bytes=max_document_bytes,
            clock=clock,
            on_close=on_close,
        )

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        """Run every stage for *context* and return the result.

        Returns ``success=True`` with all seven stages ``completed`` when every
        collaborator succeeds.  Otherwise returns ``success=False`` with the
        failing stage marked ``failed`` and no entries for later stages.

        This method never raises (other than for cancellation of the
        surrounding task).
        """
        start_ms = int(time.monotonic() * 1000)
        tracker = StageTracker()

        with tracer.start_as_current_span(
            "docassess.process",
            kind=trace.SpanKind.INTERNAL,
        ) as root_span:
            root_span.set_attribute("upload.id", context.upload_id)
            root_span.set_attribute("upload.document_type", context.document_type)

            logger.info(
                "DocumentPipeline start: upload_id=%s document_type=%s",
                context.upload_id,
                context.document_type,
                extra={"event": "pipeline_started", "upload_id": context.upload_id},
            )

            try:
                result = await self._run(context, tracker)
            except Exception as exc:
                # Anything escaping the loop is pinned on the stage in flight.
                result = self._fail_current(context, tracker, exc)

            elapsed_ms = int(time.monotonic() * 1000) - start_ms
            root_span.set_attribute("pipeline.success", result.success)
            root_span.set_attribute("pipeline.duration_ms", elapsed_ms)

            if result.success:
                root_span.set_attribute(
                    "pipeline.compliance_score", result.summary.compliance_score
                )
                logger.info(
                    "DocumentPipeline complete: upload_id=%s total_gaps=%d "
                    "critical_gaps=%d compliance_score=%d artifacts=%d duration_ms=%d",
                    context.upload_id,
                    result.summary.total_gaps,
                    result.summary.critical_gaps,
                    result.summary.compliance_score,
                    len(result.artifact_ids),
                    elapsed_ms,
                    extra={"event": "pipeline_completed", "upload_id": context.upload_id},
                )
            else:
                root_span.set_status(Status(StatusCode.ERROR, "pipeline failed"))
                root_span.set_attribute("pipeline.failed_stage", result.failed_stage or "")

        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, context: ProcessingContext, tracker: StageTracker) -> ProcessingResult:
        file_bytes: bytes | None = None
        prior: PriorOutputs | None = None

        for descriptor in self._stages:
            stage = descriptor.name
            with tracer.start_as_current_span(f"docassess.{stage.value}") as span:
                span.set_attribute("stage.name", stage.value)
                span.set_attribute("upload.id", context.upload_id)
                tracker.start(stage, self._clock())

                if prior is None:
                    # The first stage consumes the raw bytes, so a read
                    # failure is recorded against it.
                    try:
                        file_bytes = await self._read_document(context.file_path)
                    except DocumentReadError as exc:
                        self._record_failure(context, tracker, stage, describe_error(exc), span)
                        return self._finish(tracker, None)
                    prior = PriorOutputs(file_bytes=file_bytes)

                outcome = await descriptor.invoke(context, prior)

                if not outcome.ok:
                    self._record_failure(context, tracker, stage, outcome.error or "", span)
                    return self._finish(tracker, None)

                descriptor.store(prior, outcome.value)
                tracker.complete(stage, self._clock())
                span.set_attribute("stage.status", "completed")
                logger.debug(
                    "Stage '%s' complete: upload_id=%s",
                    stage.value,
                    context.upload_id,
                )

        return self._finish(tracker, prior)

    async def _read_document(self, file_path: str) -> bytes:
        path = Path(file_path)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise DocumentReadError(
                f"cannot read document: {exc.strerror or exc}", file_path=file_path
            ) from exc
        if self._max_document_bytes is not None and len(data) > self._max_document_bytes:
            raise DocumentReadError(
                f"document is {len(data)} bytes, limit is {self._max_document_bytes}",
                file_path=file_path,
            )
        return data

    def _record_failure(
        self,
        context: ProcessingContext,
        tracker: StageTracker,
        stage: StageName,
        error: str,
        span: trace.Span,
    ) -> None:
        tracker.fail(stage, error, self._clock())
        span.set_status(Status(StatusCode.ERROR, error))
        span.set_attribute("stage.status", "failed")
        logger.error(
            "Stage '%s' failed: upload_id=%s error=%s",
            stage.value,
            context.upload_id,
            error,
            extra={"event": "stage_failed", "upload_id": context.upload_id, "stage": stage.value},
        )

    def _fail_current(
        self,
        context: ProcessingContext,
        tracker: StageTracker,
        exc: Exception,
    ) -> ProcessingResult:
        current = tracker.current
        logger.exception(
            "DocumentPipeline internal error: upload_id=%s stage=%s",
            context.upload_id,
            current.value if current is not None else None,
            extra={"event": "pipeline_internal_error", "upload_id": context.upload_id},
        )
        if current is not None:
            tracker.fail(current, describe_error(exc), self._clock())
        return self._finish(tracker, None)

    @staticmethod
    def _finish(tracker: StageTracker, prior: PriorOutputs | None) -> ProcessingResult:
        """Build the final result exactly once.

        *prior* is ``None`` for failed runs, which carry no summary and no
        artifact ids.
        """
        if prior is None:
            return ProcessingResult(success=False, stages=tracker.snapshot())
        # Derived values were computed by their stages while still processing.
        return ProcessingResult(
            success=True,
            stages=tracker.snapshot(),
            artifact_ids=prior.artifact_ids,
            summary=prior.summary,
        )


def build_pipeline(
    *,
    framework_mapper: FrameworkMapper,
    gap_analyzer: GapAnalyzer,
    policy_redliner: PolicyRedliner,
    artifact_generator: ArtifactGenerator,
    malware_scanner: MalwareScanner | None = None,
    text_extractor: TextExtractor | None = None,
    sensitive_data_detector: SensitiveDataDetector | None = None,
    settings: Settings | None = None,
    clock: Clock = utc_now,
) -> DocumentPipeline:
    """Build a :class:`DocumentPipeline`, defaulting the first three collaborators.

    Framework mapping, gap analysis, redlining and artifact generation have
    no built-in implementation and must be supplied.  The malware scanner,
    text extractor and sensitive-data detector default to the adapters in
    :mod:`docassess.adapters`, configured from *settings*.  Call
    :meth:`DocumentPipeline.close` to shut down the default text extractor's
    thread pool; injected collaborators are left to their owner.
    """
    from docassess.adapters.clamav_scanner import ClamAVMalwareScanner
    from docassess.adapters.document_extractor import DocumentExtractor
    from docassess.adapters.sensitive_data import PatternSensitiveDataDetector

    settings = settings or get_settings()

    on_close: list[Callable[[], None]] = []
    if text_extractor is None:
        extractor = DocumentExtractor(max_workers=settings.extractor_max_workers)
        on_close.append(extractor.shutdown)
        text_extractor = extractor

    collaborators = Collaborators(
        malware_scanner=malware_scanner
        or ClamAVMalwareScanner(
            host=settings.clamav_host,
            port=settings.clamav_port,
            timeout=settings.clamav_timeout,
        ),
        text_extractor=text_extractor,
        sensitive_data_detector=sensitive_data_detector
        or PatternSensitiveDataDetector(
            custom_patterns_path=settings.custom_patterns_path,
            redact=settings.redact_sensitive_data,
        ),
        framework_mapper=framework_mapper,
        gap_analyzer=gap_analyzer,
        policy_redliner=policy_redliner,
        artifact_generator=artifact_generator,
    )
    return DocumentPipeline.from_collaborators(
        collaborators,
        default_institution_type=settings.default_institution_type,
        max_document_bytes=settings.max_document_bytes,
        clock=clock,
        on_close=on_close,
    )
