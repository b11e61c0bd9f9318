"""Append-only voice playback telemetry, one JSONL file per UTC day."""

import hashlib
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from lessonarcade.config import settings
from lessonarcade.schemas import VoiceTelemetryEvent

logger = logging.getLogger(__name__)


def telemetry_file_name(day: date) -> str:
    return f"events-{day.isoformat()}.jsonl"


def _get_log_path(log_dir: Path | None = None) -> Path:
    log_dir = log_dir or settings.voice_analytics_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    today = datetime.now(timezone.utc).date()
    return log_dir / telemetry_file_name(today)


def _salted_hash(*parts: str) -> str:
    payload = ":".join((settings.logging_salt, *parts))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def resolve_client_ip(headers, peer: str | None = None) -> str:
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = headers.get(header)
        if value:
            return value
    return peer or "unknown"


def append_telemetry_event(
    event: VoiceTelemetryEvent,
    client_ip: str | None = None,
    user_agent: str | None = None,
    accept_language: str | None = None,
    log_dir: Path | None = None,
) -> None:
    """Append one validated event to today's file.

    When request context is given, the client IP and fingerprint are stored
    only as salted hashes. Write failures are logged, never raised.
    """
    if client_ip is not None:
        event = event.model_copy(update={
            "ip_hash": _salted_hash(client_ip),
            "fingerprint_hash": _salted_hash(user_agent or "unknown", accept_language or "unknown"),
        })

    line = json.dumps(event.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False)
    try:
        log_path = _get_log_path(log_dir)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        logger.exception("Failed to append voice telemetry event")
