"""Top-N lesson rankings for the workspace dashboard.

Both rankings use Python's stable sort, so lessons that tie keep the
order in which they first appear in the run set.
"""

from lessonarcade.schemas import EngagedLesson, StrugglingLesson
from lessonarcade.services.run_aggregation import LessonRunStats

# 1-2 runs are too few to call a lesson "struggling"
MIN_RUNS_FOR_STRUGGLING = 3
TOP_LESSONS_LIMIT = 3


def top_struggling_lessons(
    stats: list[LessonRunStats],
    limit: int = TOP_LESSONS_LIMIT,
    min_runs: int = MIN_RUNS_FOR_STRUGGLING,
) -> list[StrugglingLesson]:
    """Lowest average score first, among lessons with enough scored runs."""
    candidates = [
        StrugglingLesson(
            lesson_slug=s.lesson_slug,
            title=s.title,
            run_count=s.run_count,
            avg_score_percent=s.avg_score_percent,
        )
        for s in stats
        if s.run_count >= min_runs and s.valid_score_count > 0
    ]
    candidates.sort(key=lambda lesson: lesson.avg_score_percent)
    return candidates[:limit]


def top_engaged_lessons(
    stats: list[LessonRunStats],
    limit: int = TOP_LESSONS_LIMIT,
) -> list[EngagedLesson]:
    """Most runs first; no minimum sample."""
    ranked = sorted(stats, key=lambda s: s.run_count, reverse=True)
    return [
        EngagedLesson(
            lesson_slug=s.lesson_slug,
            title=s.title,
            run_count=s.run_count,
            avg_score_percent=s.avg_score_percent,
        )
        for s in ranked[:limit]
    ]
