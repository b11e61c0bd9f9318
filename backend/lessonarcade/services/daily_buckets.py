from typing import Iterable

from lessonarcade.schemas import DailyBucket, TimeWindow
from lessonarcade.services.event_store import LessonRunRecord
from lessonarcade.services.run_aggregation import mean_percent, score_percent
from lessonarcade.services.window import iter_utc_days, utc_date_key


def build_daily_buckets(
    runs: Iterable[LessonRunRecord], window: TimeWindow
) -> list[DailyBucket]:
    """One bucket per UTC day of the window, empty days included.

    Only completed runs are bucketed, keyed by the UTC date of completed_at.
    A completion outside the window's days is dropped here even though it
    still counts towards the report's run total. The bucket average is the
    mean over that day's runs that have a score (max_score > 0).
    """
    days: dict[str, list[float]] = {}
    counts: dict[str, int] = {}
    for day in iter_utc_days(window):
        key = day.isoformat()
        days[key] = []
        counts[key] = 0

    for run in runs:
        if run.completed_at is None:
            continue
        key = utc_date_key(run.completed_at)
        if key not in counts:
            continue
        counts[key] += 1
        pct = score_percent(run)
        if pct is not None:
            days[key].append(pct)

    return [
        DailyBucket(
            date=key,
            runs=counts[key],
            avg_score_percent=mean_percent(sum(days[key]), len(days[key])),
        )
        for key in sorted(counts)
    ]
