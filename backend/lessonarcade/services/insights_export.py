"""CSV export of the workspace and lesson insights reports.

Output is deterministic: fixed section order, "\\n" row terminators on
every platform, ISO-8601 UTC instants with millisecond precision, and
"N/A" for missing numbers. Each section is a title line followed by a
header row; sections are separated by one blank line. Header rows are
written even when a table has no data.
"""

import re
from datetime import datetime
from typing import Iterable, Optional

from lessonarcade.schemas import LessonInsights, WorkspaceInsights
from lessonarcade.services.window import as_utc

NOT_AVAILABLE = "N/A"


def escape_csv_value(value: str) -> str:
    if any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def to_csv_row(values: Iterable[str]) -> str:
    return ",".join(escape_csv_value(v) for v in values) + "\n"


def format_instant(dt: datetime) -> str:
    return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_number(value: Optional[float]) -> str:
    return NOT_AVAILABLE if value is None else str(value)


def _section(title: str, header: list[str], rows: Iterable[list[str]]) -> str:
    out = [title + "\n", to_csv_row(header)]
    out.extend(to_csv_row(row) for row in rows)
    return "".join(out)


def _join_sections(sections: list[str]) -> str:
    return "\n".join(sections)


def build_workspace_insights_csv(insights: WorkspaceInsights) -> str:
    summary = _section("Summary", ["Metric", "Value"], [
        ["Time Window Start", format_instant(insights.time_window_start)],
        ["Time Window End", format_instant(insights.time_window_end)],
        ["Total Runs", str(insights.total_runs_in_window)],
        ["Average Score %", format_number(insights.avg_score_percent_in_window)],
        ["Unique Sessions", str(insights.total_unique_learner_sessions)],
        ["Total Comments", str(insights.total_comments_in_window)],
    ])
    lesson_header = ["Lesson Title", "Lesson Slug", "Runs", "Average Score %"]
    struggling = _section("Top Struggling Lessons", lesson_header, (
        [lesson.title, lesson.lesson_slug, str(lesson.run_count), format_number(lesson.avg_score_percent)]
        for lesson in insights.top_struggling_lessons
    ))
    engaged = _section("Top Engaged Lessons", lesson_header, (
        [lesson.title, lesson.lesson_slug, str(lesson.run_count), format_number(lesson.avg_score_percent)]
        for lesson in insights.top_engaged_lessons
    ))
    activity = _section(
        "Recent Activity",
        ["Type", "Timestamp", "Lesson Title", "Lesson Slug", "Description"],
        (
            [a.type, format_instant(a.timestamp), a.lesson_title, a.lesson_slug, a.description]
            for a in insights.recent_activity
        ),
    )
    return _join_sections([summary, struggling, engaged, activity])


def build_lesson_insights_csv(insights: LessonInsights) -> str:
    summary = _section("Summary", ["Metric", "Value"], [
        ["Lesson Title", insights.lesson.title],
        ["Lesson Slug", insights.lesson.slug],
        ["Time Window Start", format_instant(insights.time_window_start)],
        ["Time Window End", format_instant(insights.time_window_end)],
        ["Total Runs", str(insights.total_runs)],
        ["Average Score %", format_number(insights.avg_score_percent)],
        ["Unique Sessions", str(insights.unique_sessions)],
        ["Total Comments", str(insights.total_comments)],
        ["Open Comments", str(insights.open_comments)],
        ["Resolved Comments", str(insights.resolved_comments)],
    ])
    modes = _section("Mode Breakdown", ["Mode", "Runs"], [
        ["Focus", str(insights.mode_breakdown.focus_runs)],
        ["Arcade", str(insights.mode_breakdown.arcade_runs)],
    ])
    comments = _section("Comments Summary", ["Status", "Count"], [
        ["Open", str(insights.open_comments)],
        ["Resolved", str(insights.resolved_comments)],
        ["Total", str(insights.total_comments)],
    ])
    buckets = _section("Daily Buckets (UTC)", ["Date", "Runs", "Average Score %"], (
        [b.date, str(b.runs), format_number(b.avg_score_percent)]
        for b in insights.daily_buckets
    ))
    activity = _section("Recent Activity", ["Type", "Timestamp", "Description"], (
        [a.type, format_instant(a.timestamp), a.description]
        for a in insights.recent_activity
    ))
    return _join_sections([summary, modes, comments, buckets, activity])


def sanitize_filename(value: str) -> str:
    """Reduce a slug to [a-z0-9._-] for use in a download filename."""
    result = re.sub(r"[^a-z0-9._-]", "-", value.lower())
    result = re.sub(r"-+", "-", result)
    result = re.sub(r"^[-.]+|[-.]+$", "", result)
    return result or "export"
