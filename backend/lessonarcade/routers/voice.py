import json
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from lessonarcade.config import settings
from lessonarcade.schemas import (
    AnalyticsFilters,
    EngineFilter,
    ReasonFilter,
    VoiceAnalyticsOut,
    VoiceTelemetryEvent,
)
from lessonarcade.services.voice_analytics import aggregate, read_telemetry_files
from lessonarcade.services.voice_telemetry import append_telemetry_event, resolve_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/voice", tags=["voice"])

ALLOWED_VOICE_DAYS = (1, 7, 14, 30)


def _validation_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": {"code": "VALIDATION", "message": message}},
    )


@router.post("/telemetry")
async def ingest_telemetry(request: Request):
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _validation_error("Invalid JSON in request body")

    try:
        event = VoiceTelemetryEvent.model_validate(body)
    except ValidationError:
        return _validation_error("Invalid telemetry event format")

    await run_in_threadpool(
        append_telemetry_event,
        event,
        client_ip=resolve_client_ip(request.headers, request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent"),
        accept_language=request.headers.get("accept-language"),
    )
    return {"ok": True}


@router.get("/analytics", response_model=VoiceAnalyticsOut)
def voice_analytics(
    days: int | None = Query(None),
    engine: EngineFilter = Query("all"),
    language_code: str = Query("all", alias="languageCode"),
    reason: ReasonFilter = Query("all"),
):
    if days not in ALLOWED_VOICE_DAYS:
        days = settings.default_voice_days
    filters = AnalyticsFilters(engine=engine, language_code=language_code or "all", reason=reason)

    try:
        parsed = read_telemetry_files(days)
        analytics = aggregate(parsed.events, filters, parse_errors=parsed.parse_errors)
    except Exception:
        logger.exception(f"Voice analytics failed ({days}d)")
        raise
    logger.info(
        f"Voice analytics ({days}d): {analytics.totals.total_events} events, "
        f"{parsed.parse_errors} parse errors"
    )
    return VoiceAnalyticsOut(analytics=analytics, days=days, filters=filters)
