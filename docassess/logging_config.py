"""Logging setup for docassess.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed once by the host process through :func:`configure_logging`.

With ``log_json`` enabled every record is rendered as a single JSON object::

    {
      "event": "stage_failed",
      "level": "ERROR",
      "logger": "docassess.core.pipeline",
      "message": "Stage 'text_extraction' failed: upload_id=u1 error=...",
      "upload_id": "u1",
      "stage": "text_extraction"
    }

Fields passed through ``extra=`` are copied into the object, so call sites can
attach ``upload_id`` and ``stage`` without formatting them by hand.
"""

from __future__ import annotations

import json
import logging
import sys

from docassess.config import Settings

_ROOT_LOGGER = "docassess"

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render a log record as a one-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "event": getattr(record, "event", "log"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key == "event":
                continue
            entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach a stdout handler to the ``docassess`` logger.

    Calling this more than once replaces the previous handler rather than
    stacking duplicates.

    Args:
        settings: Source of ``log_level`` and ``log_json``.

    Returns:
        The configured ``docassess`` package logger.
    """
    package_logger = logging.getLogger(_ROOT_LOGGER)
    package_logger.setLevel(settings.log_level)

    for handler in list(package_logger.handlers):
        if getattr(handler, "_docassess_handler", False):
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    handler._docassess_handler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    return package_logger
