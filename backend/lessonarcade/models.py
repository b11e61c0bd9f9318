from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from lessonarcade.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(100), unique=True, nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    lessons = relationship("Lesson", back_populates="workspace")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    email = Column(String(255), unique=True, nullable=True)


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (UniqueConstraint("workspace_id", "slug", name="uq_lessons_workspace_slug"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)
    slug = Column(String(100), nullable=False)
    title = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    workspace = relationship("Workspace", back_populates="lessons")
    runs = relationship("LessonRun", back_populates="lesson")
    comments = relationship("LessonComment", back_populates="lesson")


class LessonRun(Base):
    __tablename__ = "lesson_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False, index=True)
    anonymous_session_id = Column(String(50), nullable=True)
    score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)
    mode = Column(String(10), nullable=False, default="focus")  # focus/arcade
    duration_ms = Column(Integer, nullable=True)
    started_at = Column(DateTime, default=_utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)  # NULL = still in progress

    lesson = relationship("Lesson", back_populates="runs")


class LessonComment(Base):
    __tablename__ = "lesson_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False, default="")
    level_index = Column(Integer, nullable=True)
    item_key = Column(String(100), nullable=True)
    status = Column(String(10), nullable=False, default="open")  # open/resolved
    created_at = Column(DateTime, default=_utcnow, index=True)

    lesson = relationship("Lesson", back_populates="comments")
    author = relationship("User")
