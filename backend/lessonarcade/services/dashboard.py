"""Studio dashboards: lessons overview and workspace overview.

Unlike the insights reports these cover a workspace's whole run history.
"""

import logging

from lessonarcade.schemas import (
    DashboardTotals,
    LessonOverviewRow,
    LessonsOverview,
    WorkspaceOverview,
    WorkspaceSummary,
)
from lessonarcade.services.event_store import EventStore, ScopeFilter, WorkspaceNotFoundError
from lessonarcade.services.ranking import top_engaged_lessons
from lessonarcade.services.run_aggregation import per_lesson_stats, summarize_runs

logger = logging.getLogger(__name__)


def _load(store: EventStore, workspace_slug: str):
    workspace = store.get_workspace(workspace_slug)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_slug)
    lessons = store.list_lessons(workspace.id)
    runs = store.find_runs(ScopeFilter(workspace_id=workspace.id))
    return workspace, lessons, runs


def get_lessons_overview(store: EventStore, workspace_slug: str) -> LessonsOverview:
    """Every lesson of the workspace by title, with run stats; zero-run lessons included."""
    workspace, lessons, runs = _load(store, workspace_slug)
    stats = per_lesson_stats(runs, lessons)
    summary = summarize_runs(runs)

    logger.info(f"Lessons overview {workspace_slug}: {len(lessons)} lessons, {summary.total_runs} runs")

    return LessonsOverview(
        workspace=WorkspaceSummary(id=workspace.id, slug=workspace.slug, name=workspace.name),
        lessons=[
            LessonOverviewRow(
                id=s.lesson_id,
                slug=s.lesson_slug,
                title=s.title,
                run_count=s.run_count,
                avg_score_percent=s.avg_score_percent,
                last_completed_at=s.last_completed_at,
            )
            for s in stats
        ],
        totals=DashboardTotals(
            total_lessons=len(lessons),
            total_runs=summary.total_runs,
            avg_score_percent=summary.avg_score_percent,
        ),
    )


def get_workspace_overview(store: EventStore, workspace_slug: str) -> WorkspaceOverview:
    workspace, lessons, runs = _load(store, workspace_slug)
    stats = per_lesson_stats(runs, lessons)
    summary = summarize_runs(runs)
    completed = [s.last_completed_at for s in stats if s.last_completed_at is not None]

    logger.info(f"Workspace overview {workspace_slug}: {len(lessons)} lessons, {summary.total_runs} runs")

    return WorkspaceOverview(
        workspace_name=workspace.name,
        workspace_slug=workspace.slug,
        total_lessons=len(lessons),
        total_lesson_runs=summary.total_runs,
        avg_score_percent=summary.avg_score_percent,
        last_completed_at=max(completed, default=None),
        top_lessons=top_engaged_lessons(stats),
    )
