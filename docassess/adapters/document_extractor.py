"""Multi-format document text extractor implementing the ``TextExtractor`` contract.

:class:`DocumentExtractor` converts the document bytes the pipeline already
read into normalised plain text.  The format is taken from the caller's MIME
type when known, otherwise guessed from the file extension.

**Supported formats**

+----------+----------------------------+------------------------------------+
| Format   | MIME types                 | Library                            |
+==========+============================+====================================+
| PDF      | application/pdf            | pdfminer.six                       |
+----------+----------------------------+------------------------------------+
| DOCX     | application/vnd.openxml…   | python-docx                        |
+----------+----------------------------+------------------------------------+
| CSV      | text/csv                   | stdlib csv                         |
+----------+----------------------------+------------------------------------+
| JSON     | application/json           | stdlib json                        |
+----------+----------------------------+------------------------------------+
| TXT, MD  | text/plain, text/markdown  | raw decode                         |
+----------+----------------------------+------------------------------------+
| ZIP      | application/zip            | stdlib zipfile (recursive)         |
+----------+----------------------------+------------------------------------+

A document with no extractable text yields ``ExtractedText(text="")`` rather
than an error; an unsupported or corrupt document raises
:class:`ExtractionError`.

**Thread-pool execution**

Parsing is CPU-bound, so :meth:`DocumentExtractor.extract` dispatches it to a
:class:`concurrent.futures.ThreadPoolExecutor` and the event loop is never
blocked.

Usage::

    from docassess.adapters.document_extractor import DocumentExtractor

    extractor = DocumentExtractor(max_workers=2)
    result = await extractor.extract("/srv/u1.pdf", file_bytes=data)
    print(result.text[:200], result.page_count)
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
import re
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import PurePath

import docx
from pdfminer.high_level import extract_pages

from docassess.core.capabilities import ExtractedText

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Maximum uncompressed size of ZIP contents (200 MiB).
_MAX_ZIP_UNCOMPRESSED_BYTES = 200 * 1024 * 1024
# Maximum number of files within a single ZIP archive.
_MAX_ZIP_FILE_COUNT = 1000
# Maximum ZIP recursion depth.  0 = top-level call; raises when depth >= limit.
_MAX_ZIP_DEPTH = 2

_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_ZIP_MIMES = frozenset({"application/zip", "application/x-zip-compressed", "application/x-zip"})

_EXT_TO_MIME: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": _DOCX_MIME,
    ".doc": "application/msword",
    ".csv": "text/csv",
    ".json": "application/json",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".zip": "application/zip",
}

# Collapse all runs of whitespace to a single space.
_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Errors and intermediate results
# ---------------------------------------------------------------------------


class ExtractionError(Exception):
    """Raised when a document cannot be extracted.

    Covers unsupported formats and corrupt files.

    Attributes:
        mime_type: The MIME type extraction was attempted with.
        original: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        mime_type: str | None = None,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.mime_type = mime_type
        self.original = original

    def __str__(self) -> str:
        base = super().__str__()
        parts = [base]
        if self.mime_type:
            parts.append(f"mime_type={self.mime_type!r}")
        if self.original is not None:
            parts.append(f"caused_by={type(self.original).__name__}: {self.original}")
        return " | ".join(parts)


@dataclass
class _Extraction:
    text: str
    page_count: int | None = None


# ---------------------------------------------------------------------------
# Format handlers (synchronous, run in the thread pool)
# ---------------------------------------------------------------------------


def _normalise(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _extract_txt(data: bytes) -> _Extraction:
    """Decode UTF-8, falling back to Latin-1 which accepts any byte sequence."""
    try:
        raw = data.decode("utf-8")
    except UnicodeDecodeError:
        raw = data.decode("latin-1")
    return _Extraction(text=_normalise(raw))


def _extract_json(data: bytes) -> _Extraction:
    """Join every string leaf of the parsed JSON document."""
    try:
        obj = json.loads(data.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as exc:
        raise ExtractionError(
            "Failed to parse JSON document",
            mime_type="application/json",
            original=exc,
        ) from exc

    strings: list[str] = []

    def _collect(node: object) -> None:
        if isinstance(node, str):
            strings.append(node)
        elif isinstance(node, dict):
            for v in node.values():
                _collect(v)
        elif isinstance(node, list):
            for item in node:
                _collect(item)

    _collect(obj)
    return _Extraction(text=_normalise(" ".join(strings)))


def _extract_csv(data: bytes) -> _Extraction:
    """Join every cell, header row included."""
    try:
        reader = csv.reader(io.StringIO(data.decode("utf-8", errors="replace")))
        cells: list[str] = []
        for row in reader:
            cells.extend(row)
    except csv.Error as exc:
        raise ExtractionError(
            "Failed to parse CSV document",
            mime_type="text/csv",
            original=exc,
        ) from exc
    return _Extraction(text=_normalise(" ".join(cells)))


def _extract_pdf(data: bytes) -> _Extraction:
    """Extract text page by page with pdfminer.six."""
    try:
        page_texts: list[str] = []
        for page_layout in extract_pages(io.BytesIO(data)):
            chunks: list[str] = []
            for element in page_layout:
                get_text = getattr(element, "get_text", None)
                if callable(get_text):
                    chunks.append(get_text())
            page_texts.append("".join(chunks))
    except Exception as exc:
        raise ExtractionError(
            "Failed to extract text from PDF",
            mime_type="application/pdf",
            original=exc,
        ) from exc

    text = _normalise(" ".join(t for t in page_texts if t.strip()))
    return _Extraction(text=text, page_count=len(page_texts))


def _extract_docx(data: bytes) -> _Extraction:
    """Join the non-empty body paragraphs with python-docx."""
    try:
        document = docx.Document(io.BytesIO(data))
        paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    except Exception as exc:
        raise ExtractionError(
            "Failed to extract text from DOCX",
            mime_type=_DOCX_MIME,
            original=exc,
        ) from exc
    return _Extraction(text=_normalise(" ".join(paragraphs)))


def _extract_zip(data: bytes, *, depth: int = 0) -> _Extraction:
    """Recursively extract every supported member of a ZIP archive.

    Unreadable or unsupported members are skipped with a warning.

    Raises:
        ExtractionError: If the archive is corrupt, exceeds the member-count
            or uncompressed-size limits, or nests deeper than
            :data:`_MAX_ZIP_DEPTH`.
    """
    if depth >= _MAX_ZIP_DEPTH:
        raise ExtractionError(
            f"ZIP recursion depth limit ({_MAX_ZIP_DEPTH}) exceeded",
            mime_type="application/zip",
        )

    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise ExtractionError(
            "Corrupt or invalid ZIP archive",
            mime_type="application/zip",
            original=exc,
        ) from exc

    members = zf.infolist()
    if len(members) > _MAX_ZIP_FILE_COUNT:
        raise ExtractionError(
            f"ZIP archive exceeds maximum member count ({_MAX_ZIP_FILE_COUNT})",
            mime_type="application/zip",
        )

    total_uncompressed = sum(m.file_size for m in members)
    if total_uncompressed > _MAX_ZIP_UNCOMPRESSED_BYTES:
        raise ExtractionError(
            f"ZIP uncompressed size ({total_uncompressed} bytes) exceeds "
            f"limit ({_MAX_ZIP_UNCOMPRESSED_BYTES} bytes)",
            mime_type="application/zip",
        )

    segments: list[str] = []
    for member in members:
        if member.is_dir():
            continue
        try:
            member_bytes = zf.read(member.filename)
        except (zipfile.BadZipFile, OSError) as exc:
            logger.warning("Skipping unreadable ZIP member %r: %s", member.filename, exc)
            continue

        member_mime = guess_mime(member.filename)
        try:
            if member_mime in _ZIP_MIMES:
                member_result = _extract_zip(member_bytes, depth=depth + 1)
            else:
                member_result = _dispatch_sync(member_bytes, member_mime)
        except ExtractionError as exc:
            logger.warning(
                "Skipping ZIP member %r (extraction failed): %s",
                member.filename,
                exc,
            )
            continue

        if member_result.text:
            segments.append(member_result.text)

    return _Extraction(text=" ".join(segments))


# ---------------------------------------------------------------------------
# MIME-type helpers
# ---------------------------------------------------------------------------


def guess_mime(filename: str) -> str:
    """Best-effort MIME type from *filename*'s extension.

    Returns ``"application/octet-stream"`` when the extension is unknown.
    """
    return _EXT_TO_MIME.get(PurePath(filename).suffix.lower(), "application/octet-stream")


def _dispatch_sync(data: bytes, mime_type: str) -> _Extraction:
    base_mime = mime_type.split(";")[0].strip().lower()

    if base_mime == "application/pdf":
        return _extract_pdf(data)
    if base_mime in {_DOCX_MIME, "application/msword"}:
        return _extract_docx(data)
    if base_mime in {"text/csv", "application/csv"}:
        return _extract_csv(data)
    if base_mime in {"application/json", "text/json"}:
        return _extract_json(data)
    if base_mime in {"text/plain", "text/x-plain", "text/markdown"}:
        return _extract_txt(data)
    if base_mime in _ZIP_MIMES:
        return _extract_zip(data)

    raise ExtractionError(f"Unsupported MIME type: {mime_type!r}", mime_type=mime_type)


# ---------------------------------------------------------------------------
# Public class
# ---------------------------------------------------------------------------


class DocumentExtractor:
    """Multi-format text extractor with thread-pool execution.

    Args:
        max_workers: Number of threads in the pool.  Ignored when *executor*
            is supplied.
        executor: Pre-built executor to use (useful for testing/injection).
    """

    def __init__(
        self,
        max_workers: int = 4,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        if executor is not None:
            self._executor = executor
            self._owns_executor = False
        else:
            self._executor = ThreadPoolExecutor(max_workers=max_workers)
            self._owns_executor = True

    def __enter__(self) -> "DocumentExtractor":
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the thread pool if this instance created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    async def extract(
        self,
        file_path: str,
        *,
        file_bytes: bytes,
        mime_type: str | None = None,
    ) -> ExtractedText:
        """Extract normalised text from *file_bytes*.

        Args:
            file_path: Original path; only its extension is used, and only
                when *mime_type* is ``None``.
            file_bytes: Document bytes already read by the pipeline.
            mime_type: Explicit MIME type; parameters such as
                ``; charset=utf-8`` are ignored.

        Raises:
            ExtractionError: If the format is unsupported or the file is
                corrupt.
        """
        resolved_mime = mime_type or guess_mime(file_path)
        loop = asyncio.get_running_loop()
        logger.debug(
            "Dispatching extraction to thread pool: mime_type=%r, size=%d bytes",
            resolved_mime,
            len(file_bytes),
        )
        result: _Extraction = await loop.run_in_executor(
            self._executor,
            _dispatch_sync,
            file_bytes,
            resolved_mime,
        )
        logger.debug("Extraction complete: %d chars extracted", len(result.text))
        return ExtractedText(
            text=result.text,
            page_count=result.page_count,
            metadata={"mime_type": resolved_mime, "char_count": len(result.text)},
        )
