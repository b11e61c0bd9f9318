"""Voice telemetry analytics: read the daily JSONL logs and aggregate them.

Reading is tolerant. A missing or unreadable day file contributes nothing.
Invalid UTF-8 is decoded with replacement characters, so a corrupt line
fails JSON parsing on its own. Every malformed or schema-invalid line is
counted in parse_errors and skipped, so one bad line never hides the rest
of the window.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from lessonarcade.config import settings
from lessonarcade.schemas import (
    AnalyticsFilters,
    AnalyticsResult,
    InterruptionPoint,
    ItemLeaderboard,
    PlayedItem,
    StoppedItem,
    VoiceTelemetryEvent,
    VoiceTotals,
)
from lessonarcade.services.voice_telemetry import telemetry_file_name

logger = logging.getLogger(__name__)

LEADERBOARD_LIMIT = 10
DEFAULT_PRESET_KEY = "default"


@dataclass
class ParseResult:
    events: list[VoiceTelemetryEvent] = field(default_factory=list)
    parse_errors: int = 0


def candidate_paths(days: int, log_dir: Path | None = None, now: datetime | None = None) -> list[Path]:
    """Day files for the last `days` UTC calendar days, newest first."""
    log_dir = log_dir or settings.voice_analytics_dir
    today = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).date()
    return [log_dir / telemetry_file_name(today - timedelta(days=i)) for i in range(days)]


def parse_jsonl(lines: Iterable[str]) -> ParseResult:
    result = ParseResult()
    for line in lines:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            result.parse_errors += 1
            continue
        try:
            result.events.append(VoiceTelemetryEvent.model_validate(payload))
        except ValidationError:
            result.parse_errors += 1
    return result


def read_telemetry_files(
    days: int, log_dir: Path | None = None, now: datetime | None = None
) -> ParseResult:
    combined = ParseResult()
    for path in candidate_paths(days, log_dir, now):
        if not path.exists():
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Skipping unreadable telemetry file {path.name}: {e}")
            continue
        parsed = parse_jsonl(line for line in content.split("\n") if line.strip())
        combined.events.extend(parsed.events)
        combined.parse_errors += parsed.parse_errors

    if combined.parse_errors:
        logger.warning(f"Voice telemetry ({days}d): {combined.parse_errors} unparseable lines skipped")
    return combined


def apply_filters(
    events: Iterable[VoiceTelemetryEvent], filters: AnalyticsFilters
) -> list[VoiceTelemetryEvent]:
    kept = []
    for e in events:
        if filters.engine != "all" and e.engine != filters.engine:
            continue
        if filters.language_code != "all" and e.language_code != filters.language_code:
            continue
        # reason only narrows events that carry one
        if filters.reason != "all" and e.reason is not None and e.reason != filters.reason:
            continue
        kept.append(e)
    return kept


def _replay_key(e: VoiceTelemetryEvent) -> tuple:
    return (
        e.lesson_slug, e.level_index, e.item_index, e.engine, e.language_code,
        e.voice_preset_key or DEFAULT_PRESET_KEY, e.rate,
    )


def aggregate(
    events: Iterable[VoiceTelemetryEvent],
    filters: AnalyticsFilters | None = None,
    parse_errors: int = 0,
) -> AnalyticsResult:
    filtered = apply_filters(events, filters or AnalyticsFilters())
    by_type = Counter(e.event for e in filtered)

    totals = VoiceTotals(
        total_events=len(filtered),
        total_plays=by_type["voice_play"],
        total_ends=by_type["voice_end"],
        total_stops=by_type["voice_stop"],
        total_pauses=by_type["voice_pause"],
        total_resumes=by_type["voice_resume"],
        total_errors=by_type["voice_error"],
        parse_errors=parse_errors,
    )
    plays = totals.total_plays

    completion_rate = totals.total_ends / plays if plays else 0.0

    distinct_plays = len({_replay_key(e) for e in filtered if e.event == "voice_play"})
    replay_rate = (plays - distinct_plays) / plays if plays else 0.0

    interruptions: Counter = Counter(
        (e.lesson_slug, e.level_index, e.item_index, e.reason)
        for e in filtered
        if e.event == "voice_stop" and e.reason
    )
    top_interruptions = [
        InterruptionPoint(
            lesson_slug=slug, level_index=level, item_index=item, reason=reason, count=count,
        )
        for (slug, level, item, reason), count in interruptions.most_common(LEADERBOARD_LIMIT)
    ]

    item_plays: dict[tuple, int] = {}
    item_stops: dict[tuple, int] = {}
    for e in filtered:
        if e.event not in ("voice_play", "voice_stop"):
            continue
        key = (e.lesson_slug, e.level_index, e.item_index)
        item_plays.setdefault(key, 0)
        item_stops.setdefault(key, 0)
        if e.event == "voice_play":
            item_plays[key] += 1
        else:
            item_stops[key] += 1

    most_played = [
        PlayedItem(lesson_slug=k[0], level_index=k[1], item_index=k[2], plays=item_plays[k])
        for k in sorted(item_plays, key=lambda k: item_plays[k], reverse=True)[:LEADERBOARD_LIMIT]
    ]
    stopped = [k for k in item_stops if item_stops[k] > 0]
    most_stopped = [
        StoppedItem(lesson_slug=k[0], level_index=k[1], item_index=k[2], stops=item_stops[k])
        for k in sorted(stopped, key=lambda k: item_stops[k], reverse=True)[:LEADERBOARD_LIMIT]
    ]

    return AnalyticsResult(
        totals=totals,
        completion_rate=completion_rate,
        replay_rate=replay_rate,
        top_interruption_points=top_interruptions,
        item_leaderboard=ItemLeaderboard(most_played=most_played, most_stopped=most_stopped),
    )
