from typing import Iterable, Union

from lessonarcade.schemas import CommentActivity, RunActivity
from lessonarcade.services.event_store import CommentRecord, LessonRunRecord
from lessonarcade.services.run_aggregation import score_percent
from lessonarcade.services.window import round_half_away

WORKSPACE_ACTIVITY_LIMIT = 5
LESSON_ACTIVITY_LIMIT = 10


def run_activity(run: LessonRunRecord) -> RunActivity:
    pct = score_percent(run)
    if pct is not None:
        description = f"Completed with {int(round_half_away(pct, 0))}% score"
    else:
        description = "Completed"
    return RunActivity(
        timestamp=run.completed_at,
        lesson_slug=run.lesson_slug,
        lesson_title=run.lesson_title,
        description=description,
    )


def comment_activity(comment: CommentRecord) -> CommentActivity:
    return CommentActivity(
        timestamp=comment.created_at,
        lesson_slug=comment.lesson_slug,
        lesson_title=comment.lesson_title,
        description=f"Comment added by {comment.author_name}",
        author_name=comment.author_name,
        level_index=comment.level_index,
        item_key=comment.item_key,
    )


def build_recent_activity(
    runs: Iterable[LessonRunRecord],
    comments: Iterable[CommentRecord],
    limit: int,
) -> list[Union[RunActivity, CommentActivity]]:
    """Completed runs and comments merged newest-first, truncated to limit."""
    entries: list[Union[RunActivity, CommentActivity]] = [
        run_activity(run) for run in runs if run.completed_at is not None
    ]
    entries.extend(comment_activity(c) for c in comments)
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries[:limit]
