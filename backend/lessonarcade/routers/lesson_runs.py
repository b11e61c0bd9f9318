import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lessonarcade.database import get_db
from lessonarcade.schemas import LessonRunCreatedOut, LessonRunIn
from lessonarcade.services.event_store import InsightsNotFoundError
from lessonarcade.services.lesson_runs import create_lesson_run

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lesson-runs", tags=["lesson-runs"])


@router.post("", response_model=LessonRunCreatedOut, status_code=201)
def post_lesson_run(payload: LessonRunIn, db: Session = Depends(get_db)):
    try:
        run = create_lesson_run(db, payload)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Recording lesson run failed for {payload.workspace_slug}/{payload.lesson_slug}")
        raise
    return LessonRunCreatedOut(lesson_run_id=run.id)
