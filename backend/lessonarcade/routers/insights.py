import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from lessonarcade.config import settings
from lessonarcade.database import get_db
from lessonarcade.schemas import LessonInsights, WorkspaceInsights
from lessonarcade.services.event_store import EventStore, InsightsNotFoundError, SqlEventStore
from lessonarcade.services.insights import get_lesson_insights, get_workspace_insights
from lessonarcade.services.insights_export import (
    build_lesson_insights_csv,
    build_workspace_insights_csv,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/studio/workspaces", tags=["insights"])

ALLOWED_WINDOW_DAYS = (0, 7, 14, 30)


def get_event_store(db: Session = Depends(get_db)) -> EventStore:
    return SqlEventStore(db)


def _window_days(window: int | None) -> int:
    if window is None:
        return settings.default_window_days
    if window not in ALLOWED_WINDOW_DAYS:
        raise HTTPException(400, f"Invalid window parameter. Use one of: {ALLOWED_WINDOW_DAYS}")
    return window


def _csv_response(csv: str, filename: str) -> Response:
    return Response(
        content=csv,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{workspace_slug}/insights", response_model=WorkspaceInsights)
def workspace_insights(
    workspace_slug: str,
    window: int | None = Query(None),
    store: EventStore = Depends(get_event_store),
):
    days = _window_days(window)
    try:
        return get_workspace_insights(store, workspace_slug, days)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Insights report failed for {workspace_slug}")
        raise


@router.get("/{workspace_slug}/insights.csv")
def workspace_insights_csv(
    workspace_slug: str,
    window: int | None = Query(None),
    store: EventStore = Depends(get_event_store),
):
    days = _window_days(window)
    try:
        insights = get_workspace_insights(store, workspace_slug, days)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Insights report failed for {workspace_slug}")
        raise

    filename = f"lessonarcade-insights-{sanitize_filename(workspace_slug)}-{days}d.csv"
    return _csv_response(build_workspace_insights_csv(insights), filename)


@router.get("/{workspace_slug}/lessons/{lesson_slug}/insights", response_model=LessonInsights)
def lesson_insights(
    workspace_slug: str,
    lesson_slug: str,
    window: int | None = Query(None),
    store: EventStore = Depends(get_event_store),
):
    days = _window_days(window)
    try:
        return get_lesson_insights(store, workspace_slug, lesson_slug, days)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Insights report failed for {workspace_slug}")
        raise


@router.get("/{workspace_slug}/lessons/{lesson_slug}/insights.csv")
def lesson_insights_csv(
    workspace_slug: str,
    lesson_slug: str,
    window: int | None = Query(None),
    store: EventStore = Depends(get_event_store),
):
    days = _window_days(window)
    try:
        insights = get_lesson_insights(store, workspace_slug, lesson_slug, days)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Insights report failed for {workspace_slug}")
        raise

    filename = (
        f"lessonarcade-lesson-insights-{sanitize_filename(workspace_slug)}"
        f"-{sanitize_filename(lesson_slug)}-{days}d.csv"
    )
    logger.info(f"Exporting {filename}")
    return _csv_response(build_lesson_insights_csv(insights), filename)
