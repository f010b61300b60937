"""ClamAV clamd socket adapter implementing the ``MalwareScanner`` contract.

Streams document bytes to a running ``clamd`` daemon with the ``INSTREAM``
command, so the worker does not need to share a filesystem with the daemon.

**Fail-secure guarantee:** a connection failure, socket timeout or ``ERROR``
response from clamd raises :class:`MalwareScanError`.  The pipeline records
that as a failed ``virus_scan`` stage; an engine that could not reach a
verdict is never reported as ``infected=False``.

**Async compatibility:** the ``clamd`` library is synchronous.  Blocking calls
are dispatched to :func:`asyncio.to_thread` so the event loop is never blocked
during I/O with the daemon.

Usage example::

    from docassess.adapters.clamav_scanner import ClamAVMalwareScanner

    scanner = ClamAVMalwareScanner(host="clamav", port=3310)
    outcome = await scanner.scan(file_bytes)
    if outcome.infected:
        print(outcome.signature)
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from typing import Any

import clamd

from docassess.core.capabilities import MalwareScanOutcome

logger = logging.getLogger(__name__)


class MalwareScanError(Exception):
    """Raised when clamd cannot produce a verdict."""


def _parse_clamd_response(
    response: dict[str, tuple[str, str | None]],
) -> list[str]:
    """Return the threat signatures in a clamd ``INSTREAM`` response.

    The clamd library returns a dict mapping the scanned item (``"stream"``)
    to a ``(result_code, detail)`` tuple:

    * ``("OK", None)``        – clean.
    * ``("FOUND", name)``     – threat *name* was detected.
    * ``("ERROR", message)``  – the engine could not scan the item.

    Raises:
        MalwareScanError: On any ``ERROR`` result, or an unknown result code.
    """
    signatures: list[str] = []

    for path, (result_code, detail) in response.items():
        if result_code == "FOUND":
            signatures.append(detail or "unknown")
        elif result_code == "OK":
            continue
        else:
            raise MalwareScanError(
                f"clamd returned {result_code} for {path}: {detail}"
            )

    return signatures


class ClamAVMalwareScanner:
    """Malware scanner backed by a clamd daemon reached over TCP.

    Each scan opens a new connection because clamd does not support
    concurrent requests on one socket.

    Args:
        host: Hostname or IP address of the clamd daemon.
        port: TCP port on which clamd listens.
        timeout: Socket timeout in seconds.
    """

    ENGINE_NAME = "clamav"

    def __init__(
        self,
        host: str = "clamav",
        port: int = 3310,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout

    async def scan(self, data: bytes) -> MalwareScanOutcome:
        """Scan *data* via ``INSTREAM``.

        Returns:
            :class:`~docassess.core.capabilities.MalwareScanOutcome`; when
            several signatures match, the first is reported.

        Raises:
            MalwareScanError: If clamd is unreachable, times out, or reports
                an error for the stream.
        """
        start_ms = int(time.monotonic() * 1000)

        try:
            response: dict[str, tuple[str, str | None]] = await asyncio.to_thread(
                self._sync_scan_stream, data
            )
        except Exception as exc:
            elapsed_ms = int(time.monotonic() * 1000) - start_ms
            logger.error(
                "ClamAV instream scan error error=%r duration_ms=%d",
                exc,
                elapsed_ms,
            )
            raise MalwareScanError(f"clamd unavailable: {exc}") from exc

        signatures = _parse_clamd_response(response)
        elapsed_ms = int(time.monotonic() * 1000) - start_ms

        logger.info(
            "ClamAV instream scan complete infected=%s signatures=%d duration_ms=%d",
            bool(signatures),
            len(signatures),
            elapsed_ms,
        )

        return MalwareScanOutcome(
            infected=bool(signatures),
            signature=signatures[0] if signatures else None,
            engine=self.ENGINE_NAME,
        )

    async def ping(self) -> bool:
        """Return ``True`` if clamd answers ``PING`` with ``PONG``."""
        try:
            response: str = await asyncio.to_thread(self._sync_ping)
            return response == "PONG"
        except Exception as exc:
            logger.warning("ClamAV ping failed: %r", exc)
            return False

    # ------------------------------------------------------------------
    # Synchronous helpers (run inside asyncio.to_thread)
    # ------------------------------------------------------------------

    def _get_client(self) -> clamd.ClamdNetworkSocket:
        return clamd.ClamdNetworkSocket(
            host=self._host,
            port=self._port,
            timeout=self._timeout,
        )

    def _sync_scan_stream(self, data: bytes) -> dict[str, tuple[str, Any]]:
        client = self._get_client()
        return client.instream(io.BytesIO(data))  # type: ignore[return-value]

    def _sync_ping(self) -> str:
        client = self._get_client()
        return client.ping()  # type: ignore[return-value]
