import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from lessonarcade.models import Lesson, LessonRun, Workspace
from lessonarcade.schemas import LessonRunIn
from lessonarcade.services.event_store import LessonNotFoundError, WorkspaceNotFoundError
from lessonarcade.services.window import as_utc

logger = logging.getLogger(__name__)


def create_lesson_run(db: Session, payload: LessonRunIn) -> LessonRun:
    """Record a completed lesson run reported by the player."""
    workspace = db.query(Workspace).filter(Workspace.slug == payload.workspace_slug).first()
    if workspace is None:
        raise WorkspaceNotFoundError(payload.workspace_slug)

    lesson = (
        db.query(Lesson)
        .filter(Lesson.workspace_id == workspace.id, Lesson.slug == payload.lesson_slug)
        .first()
    )
    if lesson is None:
        raise LessonNotFoundError(payload.lesson_slug, payload.workspace_slug)

    completed_at = as_utc(payload.completed_at)
    started_at = completed_at
    if payload.duration_ms:
        started_at = completed_at - timedelta(milliseconds=payload.duration_ms)

    run = LessonRun(
        workspace_id=workspace.id,
        lesson_id=lesson.id,
        anonymous_session_id=(
            str(payload.anonymous_session_id) if payload.anonymous_session_id else None
        ),
        score=payload.score,
        max_score=payload.max_score,
        mode=payload.mode,
        duration_ms=payload.duration_ms,
        started_at=started_at,
        completed_at=completed_at,
    )
    db.add(run)
    db.commit()
    db.refresh(run)

    logger.info(f"Lesson run {run.id} recorded for {payload.workspace_slug}/{payload.lesson_slug}")
    return run
