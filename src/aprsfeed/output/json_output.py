"""JSON renderings for piped output.

Streamed sightings are one compact object per line so the output can be
fed to ``jq`` or a log shipper.  One-shot command results and errors use an
indented ``ok``/``command`` envelope.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _plain(value: Any) -> Any:
    """Dump models (dropping ``None`` fields, e.g. a missing altitude) and lists of models."""
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def format_json_event(*, event: str, data: Any) -> str:
    """``{"event": ..., "data": ..., "timestamp": ...}`` on a single line."""
    return json.dumps(
        {"event": event, "data": _plain(data), "timestamp": _timestamp()},
        default=str,
    )


def format_json_response(*, data: Any, command: str) -> str:
    envelope = {"ok": True, "command": command, "data": _plain(data), "timestamp": _timestamp()}
    return json.dumps(envelope, indent=2, default=str)


def format_json_error(*, code: str, message: str, command: str) -> str:
    """Error envelope; *code* is ``invalid_config`` or the exception class name."""
    envelope = {
        "ok": False,
        "command": command,
        "error": {"code": code, "message": message},
        "timestamp": _timestamp(),
    }
    return json.dumps(envelope, indent=2, default=str)
