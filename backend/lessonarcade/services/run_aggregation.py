"""Scalar metrics over a set of lesson runs, overall and per lesson.

A run only contributes to score averages once completed and when
max_score > 0; in-progress and unscored runs still count towards totals
and sessions.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from lessonarcade.models import Lesson
from lessonarcade.schemas import ModeBreakdown
from lessonarcade.services.event_store import LessonRunRecord
from lessonarcade.services.window import round_half_away


def score_percent(run: LessonRunRecord) -> Optional[float]:
    if run.completed_at is not None and run.max_score > 0:
        return run.score / run.max_score * 100
    return None


def mean_percent(total: float, count: int) -> Optional[float]:
    if count == 0:
        return None
    return round_half_away(total / count, 1)


@dataclass(frozen=True)
class RunSummary:
    total_runs: int
    avg_score_percent: Optional[float]
    unique_sessions: int


@dataclass
class LessonRunStats:
    lesson_id: int
    lesson_slug: str
    title: str
    run_count: int = 0
    total_score_percent: float = 0.0
    valid_score_count: int = 0
    last_completed_at: Optional[datetime] = None

    @property
    def avg_score_percent(self) -> Optional[float]:
        return mean_percent(self.total_score_percent, self.valid_score_count)

    def add(self, run: LessonRunRecord) -> None:
        self.run_count += 1
        if run.completed_at is not None and (
            self.last_completed_at is None or run.completed_at > self.last_completed_at
        ):
            self.last_completed_at = run.completed_at
        pct = score_percent(run)
        if pct is not None:
            self.total_score_percent += pct
            self.valid_score_count += 1


def summarize_runs(runs: Iterable[LessonRunRecord]) -> RunSummary:
    total_runs = 0
    total_pct = 0.0
    valid = 0
    sessions: set[str] = set()

    for run in runs:
        total_runs += 1
        pct = score_percent(run)
        if pct is not None:
            total_pct += pct
            valid += 1
        if run.anonymous_session_id is not None:
            sessions.add(run.anonymous_session_id)

    return RunSummary(
        total_runs=total_runs,
        avg_score_percent=mean_percent(total_pct, valid),
        unique_sessions=len(sessions),
    )


def per_lesson_stats(
    runs: Iterable[LessonRunRecord], lessons: Iterable[Lesson] = ()
) -> list[LessonRunStats]:
    """Group runs by lesson.

    Lessons passed in are listed first, in the given order and even with no
    runs; any other lesson follows in order of its first run.
    """
    by_lesson: dict[int, LessonRunStats] = {
        lesson.id: LessonRunStats(lesson_id=lesson.id, lesson_slug=lesson.slug, title=lesson.title)
        for lesson in lessons
    }
    for run in runs:
        stats = by_lesson.get(run.lesson_id)
        if stats is None:
            stats = LessonRunStats(
                lesson_id=run.lesson_id,
                lesson_slug=run.lesson_slug,
                title=run.lesson_title,
            )
            by_lesson[run.lesson_id] = stats
        stats.add(run)
    return list(by_lesson.values())


def mode_breakdown(runs: Iterable[LessonRunRecord]) -> ModeBreakdown:
    breakdown = ModeBreakdown()
    for run in runs:
        if run.mode == "focus":
            breakdown.focus_runs += 1
        elif run.mode == "arcade":
            breakdown.arcade_runs += 1
    return breakdown
