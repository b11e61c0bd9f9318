"""Workspace and lesson insights reports.

Each report is recomputed per request from one read of the event store:
resolve scope, resolve the window, fetch runs and comments, aggregate.
"""

import logging
from datetime import datetime

from lessonarcade.schemas import LessonInsights, LessonSummary, WorkspaceInsights
from lessonarcade.services.activity_timeline import (
    LESSON_ACTIVITY_LIMIT,
    WORKSPACE_ACTIVITY_LIMIT,
    build_recent_activity,
)
from lessonarcade.services.daily_buckets import build_daily_buckets
from lessonarcade.services.event_store import (
    EventStore,
    LessonNotFoundError,
    ScopeFilter,
    WorkspaceNotFoundError,
)
from lessonarcade.services.ranking import top_engaged_lessons, top_struggling_lessons
from lessonarcade.services.run_aggregation import (
    mode_breakdown,
    per_lesson_stats,
    summarize_runs,
)
from lessonarcade.services.window import resolve_window

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


def get_workspace_insights(
    store: EventStore,
    workspace_slug: str,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> WorkspaceInsights:
    workspace = store.get_workspace(workspace_slug)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_slug)

    window = resolve_window(window_days, now)
    scope = ScopeFilter(workspace_id=workspace.id)
    runs = store.find_runs(scope, window)
    comments = store.find_comments(scope, window)

    summary = summarize_runs(runs)
    lesson_stats = per_lesson_stats(runs)

    logger.info(
        f"Workspace insights {workspace_slug} ({window_days}d): "
        f"{summary.total_runs} runs, {len(comments)} comments, {len(lesson_stats)} lessons"
    )

    return WorkspaceInsights(
        time_window_start=window.start,
        time_window_end=window.end,
        total_runs_in_window=summary.total_runs,
        avg_score_percent_in_window=summary.avg_score_percent,
        total_unique_learner_sessions=summary.unique_sessions,
        total_comments_in_window=len(comments),
        top_struggling_lessons=top_struggling_lessons(lesson_stats),
        top_engaged_lessons=top_engaged_lessons(lesson_stats),
        recent_activity=build_recent_activity(runs, comments, WORKSPACE_ACTIVITY_LIMIT),
    )


def get_lesson_insights(
    store: EventStore,
    workspace_slug: str,
    lesson_slug: str,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> LessonInsights:
    workspace = store.get_workspace(workspace_slug)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_slug)
    lesson = store.get_lesson(workspace.id, lesson_slug)
    if lesson is None:
        raise LessonNotFoundError(lesson_slug, workspace_slug)

    window = resolve_window(window_days, now)
    scope = ScopeFilter(workspace_id=workspace.id, lesson_id=lesson.id)
    runs = store.find_runs(scope, window)
    comments = store.find_comments(scope, window)

    summary = summarize_runs(runs)
    open_comments = sum(1 for c in comments if c.status == "open")
    resolved_comments = sum(1 for c in comments if c.status == "resolved")

    logger.info(
        f"Lesson insights {workspace_slug}/{lesson_slug} ({window_days}d): "
        f"{summary.total_runs} runs, {len(comments)} comments"
    )

    return LessonInsights(
        time_window_start=window.start,
        time_window_end=window.end,
        lesson=LessonSummary(id=lesson.id, slug=lesson.slug, title=lesson.title),
        total_runs=summary.total_runs,
        avg_score_percent=summary.avg_score_percent,
        mode_breakdown=mode_breakdown(runs),
        unique_sessions=summary.unique_sessions,
        total_comments=len(comments),
        open_comments=open_comments,
        resolved_comments=resolved_comments,
        daily_buckets=build_daily_buckets(runs, window),
        recent_activity=build_recent_activity(runs, comments, LESSON_ACTIVITY_LIMIT),
    )
