"""Read side of lesson runs and comments, as consumed by the insights reports.

The reports only ever see immutable records; the ORM stays behind
SqlEventStore so report code can be exercised with plain lists.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.orm import Session, joinedload

from lessonarcade.models import Lesson, LessonComment, LessonRun, Workspace
from lessonarcade.schemas import TimeWindow
from lessonarcade.services.window import as_utc


class InsightsNotFoundError(Exception):
    pass


class WorkspaceNotFoundError(InsightsNotFoundError):
    def __init__(self, workspace_slug: str):
        super().__init__(f'Workspace with slug "{workspace_slug}" not found')
        self.workspace_slug = workspace_slug


class LessonNotFoundError(InsightsNotFoundError):
    def __init__(self, lesson_slug: str, workspace_slug: str):
        super().__init__(
            f'Lesson with slug "{lesson_slug}" not found in workspace "{workspace_slug}"'
        )
        self.lesson_slug = lesson_slug
        self.workspace_slug = workspace_slug


@dataclass(frozen=True)
class ScopeFilter:
    workspace_id: int
    lesson_id: Optional[int] = None


@dataclass(frozen=True)
class LessonRunRecord:
    lesson_id: int
    lesson_slug: str
    lesson_title: str
    score: int
    max_score: int
    mode: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    anonymous_session_id: Optional[str] = None


@dataclass(frozen=True)
class CommentRecord:
    lesson_id: int
    lesson_slug: str
    lesson_title: str
    author_name: str
    created_at: datetime
    status: str
    level_index: Optional[int] = None
    item_key: Optional[str] = None


class EventStore(Protocol):
    def get_workspace(self, slug: str) -> Optional[Workspace]: ...

    def get_lesson(self, workspace_id: int, slug: str) -> Optional[Lesson]: ...

    def list_lessons(self, workspace_id: int) -> list[Lesson]: ...

    def find_runs(
        self, scope: ScopeFilter, window: Optional[TimeWindow] = None
    ) -> list[LessonRunRecord]: ...

    def find_comments(self, scope: ScopeFilter, window: TimeWindow) -> list[CommentRecord]: ...


class SqlEventStore:
    def __init__(self, db: Session):
        self.db = db

    def get_workspace(self, slug: str) -> Optional[Workspace]:
        return self.db.query(Workspace).filter(Workspace.slug == slug).first()

    def get_lesson(self, workspace_id: int, slug: str) -> Optional[Lesson]:
        return (
            self.db.query(Lesson)
            .filter(Lesson.workspace_id == workspace_id, Lesson.slug == slug)
            .first()
        )

    def list_lessons(self, workspace_id: int) -> list[Lesson]:
        return (
            self.db.query(Lesson)
            .filter(Lesson.workspace_id == workspace_id)
            .order_by(Lesson.title.asc(), Lesson.id.asc())
            .all()
        )

    def find_runs(
        self, scope: ScopeFilter, window: Optional[TimeWindow] = None
    ) -> list[LessonRunRecord]:
        """Runs in scope started since window.start, or the whole history without a window.

        In-progress runs are included; only the lower bound applies.
        """
        q = (
            self.db.query(LessonRun)
            .options(joinedload(LessonRun.lesson))
            .filter(LessonRun.workspace_id == scope.workspace_id)
        )
        if window is not None:
            q = q.filter(LessonRun.started_at >= window.start)
        if scope.lesson_id is not None:
            q = q.filter(LessonRun.lesson_id == scope.lesson_id)
        rows = q.order_by(LessonRun.started_at.asc(), LessonRun.id.asc()).all()

        return [
            LessonRunRecord(
                lesson_id=r.lesson_id,
                lesson_slug=r.lesson.slug,
                lesson_title=r.lesson.title,
                score=r.score,
                max_score=r.max_score,
                mode=r.mode,
                started_at=as_utc(r.started_at),
                completed_at=as_utc(r.completed_at) if r.completed_at else None,
                anonymous_session_id=r.anonymous_session_id,
            )
            for r in rows
        ]

    def find_comments(self, scope: ScopeFilter, window: TimeWindow) -> list[CommentRecord]:
        q = (
            self.db.query(LessonComment)
            .options(joinedload(LessonComment.lesson), joinedload(LessonComment.author))
            .filter(
                LessonComment.workspace_id == scope.workspace_id,
                LessonComment.created_at >= window.start,
            )
        )
        if scope.lesson_id is not None:
            q = q.filter(LessonComment.lesson_id == scope.lesson_id)
        rows = q.order_by(LessonComment.created_at.desc(), LessonComment.id.desc()).all()

        return [
            CommentRecord(
                lesson_id=c.lesson_id,
                lesson_slug=c.lesson.slug,
                lesson_title=c.lesson.title,
                author_name=c.author.name,
                created_at=as_utc(c.created_at),
                status=c.status,
                level_index=c.level_index,
                item_key=c.item_key,
            )
            for c in rows
        ]
