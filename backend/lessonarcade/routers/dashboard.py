import logging

from fastapi import APIRouter, Depends, HTTPException

from lessonarcade.routers.insights import get_event_store
from lessonarcade.schemas import LessonsOverview, WorkspaceOverview
from lessonarcade.services.dashboard import get_lessons_overview, get_workspace_overview
from lessonarcade.services.event_store import EventStore, InsightsNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/studio/workspaces", tags=["dashboard"])


@router.get("/{workspace_slug}/overview", response_model=WorkspaceOverview)
def workspace_overview(workspace_slug: str, store: EventStore = Depends(get_event_store)):
    try:
        return get_workspace_overview(store, workspace_slug)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Workspace overview failed for {workspace_slug}")
        raise


@router.get("/{workspace_slug}/lessons-overview", response_model=LessonsOverview)
def lessons_overview(workspace_slug: str, store: EventStore = Depends(get_event_store)):
    try:
        return get_lessons_overview(store, workspace_slug)
    except InsightsNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception:
        logger.exception(f"Lessons overview failed for {workspace_slug}")
        raise
