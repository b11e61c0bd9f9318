import csv
import io
from datetime import datetime, timedelta, timezone

from lessonarcade.schemas import (
    CommentActivity,
    DailyBucket,
    EngagedLesson,
    LessonInsights,
    LessonSummary,
    ModeBreakdown,
    RunActivity,
    StrugglingLesson,
    WorkspaceInsights,
)
from lessonarcade.services.insights_export import (
    build_lesson_insights_csv,
    build_workspace_insights_csv,
    escape_csv_value,
    format_instant,
    sanitize_filename,
    to_csv_row,
)

END = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
START = END - timedelta(days=7)

WORKSPACE_SECTIONS = ["Summary", "Top Struggling Lessons", "Top Engaged Lessons", "Recent Activity"]
LESSON_SECTIONS = ["Summary", "Mode Breakdown", "Comments Summary", "Daily Buckets (UTC)", "Recent Activity"]


def _workspace_insights(**overrides):
    data = dict(
        time_window_start=START,
        time_window_end=END,
        total_runs_in_window=0,
        avg_score_percent_in_window=None,
        total_unique_learner_sessions=0,
        total_comments_in_window=0,
        top_struggling_lessons=[],
        top_engaged_lessons=[],
        recent_activity=[],
    )
    data.update(overrides)
    return WorkspaceInsights(**data)


def _lesson_insights(**overrides):
    data = dict(
        time_window_start=START,
        time_window_end=END,
        lesson=LessonSummary(id=1, slug="intro", title="Intro"),
        total_runs=0,
        avg_score_percent=None,
        mode_breakdown=ModeBreakdown(),
        unique_sessions=0,
        total_comments=0,
        open_comments=0,
        resolved_comments=0,
        daily_buckets=[],
        recent_activity=[],
    )
    data.update(overrides)
    return LessonInsights(**data)


def _section_titles(text, titles):
    lines = text.split("\n")
    return [line for line in lines if line in titles]


class TestEscaping:
    def test_plain_value_verbatim(self):
        assert escape_csv_value("Intro to Meetings") == "Intro to Meetings"

    def test_comma_quoted(self):
        assert escape_csv_value("a,b") == '"a,b"'

    def test_quotes_doubled(self):
        assert escape_csv_value('say "hi"') == '"say ""hi"""'

    def test_newlines_quoted(self):
        assert escape_csv_value("line1\nline2") == '"line1\nline2"'
        assert escape_csv_value("a\rb") == '"a\rb"'

    def test_row_terminator(self):
        assert to_csv_row(["a", "b,c"]) == 'a,"b,c"\n'

    def test_value_recoverable(self):
        tricky = 'Title, with "quotes"\nand newline'
        parsed = next(csv.reader(io.StringIO(to_csv_row([tricky, "x"]))))
        assert parsed == [tricky, "x"]


def test_format_instant_full_iso():
    assert format_instant(END) == "2024-03-15T12:00:00.000Z"
    assert format_instant(datetime(2024, 3, 15, 8, 0, tzinfo=timezone(timedelta(hours=-4)))) == (
        "2024-03-15T12:00:00.000Z"
    )


class TestWorkspaceCsv:
    def test_sections_in_order_when_empty(self):
        out = build_workspace_insights_csv(_workspace_insights())
        assert _section_titles(out, WORKSPACE_SECTIONS) == WORKSPACE_SECTIONS
        assert out.count("Lesson Title,Lesson Slug,Runs,Average Score %\n") == 2
        assert "Type,Timestamp,Lesson Title,Lesson Slug,Description\n" in out
        assert "Average Score %,N/A\n" in out
        assert "\r" not in out

    def test_summary_rows(self):
        out = build_workspace_insights_csv(_workspace_insights(
            total_runs_in_window=3, avg_score_percent_in_window=90.0,
            total_unique_learner_sessions=2, total_comments_in_window=1,
        ))
        assert out.startswith("Summary\nMetric,Value\n")
        assert "Time Window Start,2024-03-08T12:00:00.000Z\n" in out
        assert "Time Window End,2024-03-15T12:00:00.000Z\n" in out
        assert "Total Runs,3\n" in out
        assert "Average Score %,90.0\n" in out
        assert "Unique Sessions,2\n" in out
        assert "Total Comments,1\n" in out

    def test_sections_separated_by_blank_line(self):
        out = build_workspace_insights_csv(_workspace_insights())
        assert "\n\nTop Struggling Lessons\n" in out
        assert "\n\nTop Engaged Lessons\n" in out
        assert "\n\nRecent Activity\n" in out

    def test_lesson_rows(self):
        out = build_workspace_insights_csv(_workspace_insights(
            top_struggling_lessons=[
                StrugglingLesson(lesson_slug="hard", title="Hard, really", run_count=4, avg_score_percent=31.5),
            ],
            top_engaged_lessons=[
                EngagedLesson(lesson_slug="ungraded", title="Ungraded", run_count=9, avg_score_percent=None),
            ],
        ))
        assert '"Hard, really",hard,4,31.5\n' in out
        assert "Ungraded,ungraded,9,N/A\n" in out

    def test_activity_rows(self):
        out = build_workspace_insights_csv(_workspace_insights(recent_activity=[
            CommentActivity(
                timestamp=END, lesson_slug="intro", lesson_title="Intro",
                description="Comment added by Ada", author_name="Ada",
            ),
            RunActivity(
                timestamp=END - timedelta(hours=1), lesson_slug="intro", lesson_title="Intro",
                description="Completed with 80% score",
            ),
        ]))
        assert "comment,2024-03-15T12:00:00.000Z,Intro,intro,Comment added by Ada\n" in out
        assert "run,2024-03-15T11:00:00.000Z,Intro,intro,Completed with 80% score\n" in out

    def test_deterministic(self):
        insights = _workspace_insights(total_runs_in_window=5)
        assert build_workspace_insights_csv(insights) == build_workspace_insights_csv(insights)


class TestLessonCsv:
    def test_sections_in_order_when_empty(self):
        out = build_lesson_insights_csv(_lesson_insights())
        assert _section_titles(out, LESSON_SECTIONS) == LESSON_SECTIONS
        assert "Date,Runs,Average Score %\n" in out
        assert "Type,Timestamp,Description\n" in out

    def test_summary_and_breakdowns(self):
        out = build_lesson_insights_csv(_lesson_insights(
            lesson=LessonSummary(id=1, slug="intro", title='The "Intro"'),
            total_runs=4, avg_score_percent=73.3, unique_sessions=2,
            mode_breakdown=ModeBreakdown(focus_runs=1, arcade_runs=3),
            total_comments=3, open_comments=2, resolved_comments=1,
        ))
        assert 'Lesson Title,"The ""Intro"""\n' in out
        assert "Lesson Slug,intro\n" in out
        assert "Average Score %,73.3\n" in out
        assert "Mode,Runs\nFocus,1\nArcade,3\n" in out
        assert "Status,Count\nOpen,2\nResolved,1\nTotal,3\n" in out
        assert "Open Comments,2\n" in out
        assert "Resolved Comments,1\n" in out

    def test_bucket_rows(self):
        out = build_lesson_insights_csv(_lesson_insights(daily_buckets=[
            DailyBucket(date="2024-03-14", runs=2, avg_score_percent=75.0),
            DailyBucket(date="2024-03-15", runs=0, avg_score_percent=None),
        ]))
        assert "2024-03-14,2,75.0\n2024-03-15,0,N/A\n" in out

    def test_activity_rows(self):
        out = build_lesson_insights_csv(_lesson_insights(recent_activity=[
            RunActivity(timestamp=END, lesson_slug="intro", lesson_title="Intro", description="Completed"),
        ]))
        assert out.endswith("Type,Timestamp,Description\nrun,2024-03-15T12:00:00.000Z,Completed\n")


class TestSanitizeFilename:
    def test_lowercases_and_replaces(self):
        assert sanitize_filename("My Workspace!") == "my-workspace"

    def test_collapses_and_trims(self):
        assert sanitize_filename("--a//b..") == "a-b"

    def test_keeps_allowed(self):
        assert sanitize_filename("intro_v1.2-final") == "intro_v1.2-final"

    def test_empty_falls_back(self):
        assert sanitize_filename("///") == "export"
        assert sanitize_filename("") == "export"
