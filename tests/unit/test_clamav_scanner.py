"""Unit tests for the ClamAV clamd socket adapter.

All tests are fully offline.  ``ClamAVMalwareScanner._get_client`` is patched
so no live clamd daemon is required.

Coverage areas:

* ``_parse_clamd_response``: clean, infected, multiple findings, and
  fail-secure handling of ``ERROR`` results.
* ``ClamAVMalwareScanner.scan``: clean and infected streams, and every
  failure mode raising :class:`MalwareScanError`.
* ``ClamAVMalwareScanner.ping``: success, failure, unexpected response.
* Constructor defaults and ``_get_client`` wiring.
"""

from __future__ import annotations

import socket
from unittest.mock import MagicMock, patch

import clamd
import pytest

from docassess.adapters.clamav_scanner import (
    ClamAVMalwareScanner,
    MalwareScanError,
    _parse_clamd_response,
)
from docassess.core.capabilities import MalwareScanner

EICAR = "Win.Test.EICAR_HDB-1"


def _scanner_with(client: MagicMock) -> tuple[ClamAVMalwareScanner, object]:
    scanner = ClamAVMalwareScanner(host="localhost", port=3310, timeout=5.0)
    return scanner, patch.object(scanner, "_get_client", return_value=client)


# ---------------------------------------------------------------------------
# _parse_clamd_response
# ---------------------------------------------------------------------------


def test_parse_ok_response_has_no_signatures() -> None:
    assert _parse_clamd_response({"stream": ("OK", None)}) == []


def test_parse_found_response_returns_signature() -> None:
    assert _parse_clamd_response({"stream": ("FOUND", EICAR)}) == [EICAR]


def test_parse_found_without_name_is_unknown() -> None:
    assert _parse_clamd_response({"stream": ("FOUND", None)}) == ["unknown"]


def test_parse_multiple_findings() -> None:
    response = {
        "archive/file1.exe": ("FOUND", "Win.Trojan.1"),
        "archive/file2.bat": ("FOUND", "Win.Backdoor.2"),
    }
    assert _parse_clamd_response(response) == ["Win.Trojan.1", "Win.Backdoor.2"]


def test_parse_error_response_raises() -> None:
    """ERROR from clamd must never pass as a clean verdict."""
    with pytest.raises(MalwareScanError, match="ERROR"):
        _parse_clamd_response({"stream": ("ERROR", "INSTREAM size limit exceeded")})


def test_parse_unknown_code_raises() -> None:
    with pytest.raises(MalwareScanError):
        _parse_clamd_response({"stream": ("WEIRD", None)})


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


class TestScan:
    @pytest.mark.asyncio
    async def test_clean_stream(self) -> None:
        client = MagicMock()
        client.instream.return_value = {"stream": ("OK", None)}
        scanner, patcher = _scanner_with(client)

        with patcher:
            outcome = await scanner.scan(b"hello")

        assert outcome.infected is False
        assert outcome.signature is None
        assert outcome.engine == "clamav"

    @pytest.mark.asyncio
    async def test_infected_stream(self) -> None:
        client = MagicMock()
        client.instream.return_value = {"stream": ("FOUND", EICAR)}
        scanner, patcher = _scanner_with(client)

        with patcher:
            outcome = await scanner.scan(b"X5O!P%@AP")

        assert outcome.infected is True
        assert outcome.signature == EICAR

    @pytest.mark.asyncio
    async def test_stream_contains_the_bytes(self) -> None:
        client = MagicMock()
        client.instream.return_value = {"stream": ("OK", None)}
        scanner, patcher = _scanner_with(client)

        with patcher:
            await scanner.scan(b"payload")

        buffer = client.instream.call_args.args[0]
        assert buffer.getvalue() == b"payload"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            clamd.ConnectionError("Error connecting to localhost:3310"),
            socket.timeout("timed out"),
            RuntimeError("unexpected"),
        ],
    )
    async def test_client_failures_raise(self, error: Exception) -> None:
        client = MagicMock()
        client.instream.side_effect = error
        scanner, patcher = _scanner_with(client)

        with patcher, pytest.raises(MalwareScanError, match="clamd unavailable"):
            await scanner.scan(b"data")

    @pytest.mark.asyncio
    async def test_error_result_raises(self) -> None:
        client = MagicMock()
        client.instream.return_value = {"stream": ("ERROR", "size limit exceeded")}
        scanner, patcher = _scanner_with(client)

        with patcher, pytest.raises(MalwareScanError):
            await scanner.scan(b"data")


# ---------------------------------------------------------------------------
# ping
# ---------------------------------------------------------------------------


class TestPing:
    @pytest.mark.asyncio
    async def test_pong(self) -> None:
        client = MagicMock()
        client.ping.return_value = "PONG"
        scanner, patcher = _scanner_with(client)
        with patcher:
            assert await scanner.ping() is True

    @pytest.mark.asyncio
    async def test_unexpected_response(self) -> None:
        client = MagicMock()
        client.ping.return_value = "NOPE"
        scanner, patcher = _scanner_with(client)
        with patcher:
            assert await scanner.ping() is False

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        client = MagicMock()
        client.ping.side_effect = clamd.ConnectionError("refused")
        scanner, patcher = _scanner_with(client)
        with patcher:
            assert await scanner.ping() is False


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_defaults() -> None:
    scanner = ClamAVMalwareScanner()
    assert scanner._host == "clamav"
    assert scanner._port == 3310
    assert scanner._timeout == 30.0


def test_get_client_uses_configured_address() -> None:
    scanner = ClamAVMalwareScanner(host="av.internal", port=3311, timeout=2.0)
    with patch("docassess.adapters.clamav_scanner.clamd.ClamdNetworkSocket") as socket_cls:
        scanner._get_client()
    socket_cls.assert_called_once_with(host="av.internal", port=3311, timeout=2.0)


def test_satisfies_malware_scanner_protocol() -> None:
    assert isinstance(ClamAVMalwareScanner(), MalwareScanner)
