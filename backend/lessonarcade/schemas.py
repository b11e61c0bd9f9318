from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class TimeWindow(BaseModel):
    start: datetime
    end: datetime
    model_config = {"frozen": True}


# --- Lesson / workspace insights ---


class DailyBucket(BaseModel):
    date: str  # YYYY-MM-DD, UTC
    runs: int = 0
    avg_score_percent: Optional[float] = None


class ModeBreakdown(BaseModel):
    focus_runs: int = 0
    arcade_runs: int = 0


class StrugglingLesson(BaseModel):
    lesson_slug: str
    title: str
    run_count: int
    avg_score_percent: float


class EngagedLesson(BaseModel):
    lesson_slug: str
    title: str
    run_count: int
    avg_score_percent: Optional[float] = None


class RunActivity(BaseModel):
    type: Literal["run"] = "run"
    timestamp: datetime
    lesson_slug: str
    lesson_title: str
    description: str


class CommentActivity(BaseModel):
    type: Literal["comment"] = "comment"
    timestamp: datetime
    lesson_slug: str
    lesson_title: str
    description: str
    author_name: str
    level_index: Optional[int] = None
    item_key: Optional[str] = None


ActivityEntry = Annotated[Union[RunActivity, CommentActivity], Field(discriminator="type")]


class WorkspaceInsights(BaseModel):
    time_window_start: datetime
    time_window_end: datetime
    total_runs_in_window: int
    avg_score_percent_in_window: Optional[float] = None
    total_unique_learner_sessions: int
    total_comments_in_window: int
    top_struggling_lessons: list[StrugglingLesson]
    top_engaged_lessons: list[EngagedLesson]
    recent_activity: list[ActivityEntry]


class LessonSummary(BaseModel):
    id: int
    slug: str
    title: str


class LessonInsights(BaseModel):
    time_window_start: datetime
    time_window_end: datetime
    lesson: LessonSummary
    total_runs: int
    avg_score_percent: Optional[float] = None
    mode_breakdown: ModeBreakdown
    unique_sessions: int
    total_comments: int
    open_comments: int
    resolved_comments: int
    daily_buckets: list[DailyBucket]
    recent_activity: list[ActivityEntry]


# --- Dashboards (whole history, no window) ---


class WorkspaceSummary(BaseModel):
    id: int
    slug: str
    name: str


class LessonOverviewRow(BaseModel):
    id: int
    slug: str
    title: str
    run_count: int
    avg_score_percent: Optional[float] = None
    last_completed_at: Optional[datetime] = None


class DashboardTotals(BaseModel):
    total_lessons: int
    total_runs: int
    avg_score_percent: Optional[float] = None


class LessonsOverview(BaseModel):
    workspace: WorkspaceSummary
    lessons: list[LessonOverviewRow]
    totals: DashboardTotals


class WorkspaceOverview(BaseModel):
    workspace_name: str
    workspace_slug: str
    total_lessons: int
    total_lesson_runs: int
    avg_score_percent: Optional[float] = None
    last_completed_at: Optional[datetime] = None
    top_lessons: list[EngagedLesson]


# --- Lesson run ingestion ---


class LessonRunIn(BaseModel):
    workspace_slug: str = Field(min_length=1)
    lesson_slug: str = Field(min_length=1)
    mode: Literal["focus", "arcade"]
    score: int = Field(ge=0)
    max_score: int = Field(ge=0)
    completed_at: datetime
    duration_ms: Optional[int] = Field(default=None, ge=0)
    anonymous_session_id: Optional[UUID] = None


class LessonRunCreatedOut(BaseModel):
    ok: bool = True
    lesson_run_id: int


# --- Voice telemetry ---

VoiceEventType = Literal[
    "voice_play", "voice_pause", "voice_resume", "voice_stop", "voice_end", "voice_error",
]
StopReason = Literal["user_stop", "navigation", "rate_limited", "cooldown_blocked", "error"]
EngineFilter = Literal["browser", "ai", "all"]
ReasonFilter = Literal["user_stop", "navigation", "rate_limited", "cooldown_blocked", "error", "all"]


class CamelModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class VoiceTelemetryEvent(CamelModel):
    """One line of the daily voice telemetry log (schema version 1)."""

    schema_version: Literal[1]
    ts: str
    event: VoiceEventType
    lesson_slug: str
    level_index: int
    item_index: int
    engine: Literal["browser", "ai"]
    language_code: str
    voice_preset_key: Optional[str] = None
    rate: float
    text_len: int
    text_hash: str
    session_id: str
    ip_hash: Optional[str] = None
    fingerprint_hash: Optional[str] = None
    deduped: Optional[bool] = None
    reason: Optional[StopReason] = None

    model_config = {"strict": True}

    @model_validator(mode="after")
    def _reason_only_on_stop(self):
        if self.reason is not None and self.event != "voice_stop":
            raise ValueError("reason is only allowed on voice_stop events")
        return self


class AnalyticsFilters(CamelModel):
    engine: EngineFilter = "all"
    language_code: str = "all"
    reason: ReasonFilter = "all"


class VoiceTotals(CamelModel):
    total_events: int = 0
    total_plays: int = 0
    total_ends: int = 0
    total_stops: int = 0
    total_pauses: int = 0
    total_resumes: int = 0
    total_errors: int = 0
    parse_errors: int = 0


class InterruptionPoint(CamelModel):
    lesson_slug: str
    level_index: int
    item_index: int
    reason: str
    count: int


class PlayedItem(CamelModel):
    lesson_slug: str
    level_index: int
    item_index: int
    plays: int


class StoppedItem(CamelModel):
    lesson_slug: str
    level_index: int
    item_index: int
    stops: int


class ItemLeaderboard(CamelModel):
    most_played: list[PlayedItem]
    most_stopped: list[StoppedItem]


class AnalyticsResult(CamelModel):
    totals: VoiceTotals
    completion_rate: float
    replay_rate: float
    top_interruption_points: list[InterruptionPoint]
    item_leaderboard: ItemLeaderboard


class VoiceAnalyticsOut(CamelModel):
    analytics: AnalyticsResult
    days: int
    filters: AnalyticsFilters
