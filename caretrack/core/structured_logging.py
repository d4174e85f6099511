"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_log_context(
    *,
    collection: str | None = None,
    record_id: str | None = None,
    operation: str | None = None,
    code: str | None = None,
    tool: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict.

    Only opaque identifiers and operation metadata are accepted, so record
    contents cannot end up in log output by accident.
    """
    context: dict[str, Any] = {}
    if collection:
        context["collection"] = collection
    if record_id:
        context["record_id"] = record_id
    if operation:
        context["operation"] = operation
    if code:
        context["error_code"] = code
    if tool:
        context["tool"] = tool
    return context


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once for process entry points."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    else:
        root.setLevel(level.upper())
