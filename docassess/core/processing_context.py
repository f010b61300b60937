"""ProcessingContext — immutable input descriptor for one pipeline run.

The caller creates exactly one :class:`ProcessingContext` per invocation of
:meth:`~docassess.core.pipeline.DocumentPipeline.process`.  The pipeline never
modifies it; everything the stages produce is accumulated separately and
discarded when ``process`` returns.

Usage::

    from docassess.core.processing_context import ProcessingContext

    ctx = ProcessingContext(
        upload_id="u1",
        file_path="/srv/uploads/u1.pdf",
        user_id="user-7",
        institution_id="inst-3",
        document_type="policy",
    )
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessingContext:
    """Identifies the uploaded document and who it belongs to.

    Attributes:
        upload_id: Identifier of the upload record; also used as the document
            id handed to the redliner and artifact generator.
        file_path: Filesystem path of the uploaded document.  Read exactly
            once per run.
        user_id: Owner of the upload.
        institution_id: Institution the upload belongs to.
        document_type: Kind of document (e.g. ``"policy"``, ``"handbook"``,
            ``"contract"``).  Passed to the framework mapper.
        institution_type: Institution type for framework applicability
            (e.g. ``"K12"``, ``"HigherEd"``).  When ``None`` the pipeline
            falls back to ``Settings.default_institution_type``.
        mime_type: MIME type of the document if the caller knows it.  When
            ``None`` the text extractor guesses it from the file extension.
    """

    upload_id: str
    file_path: str
    user_id: str
    institution_id: str
    document_type: str
    institution_type: str | None = None
    mime_type: str | None = None
