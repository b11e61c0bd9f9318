from datetime import datetime, timedelta, timezone

from lessonarcade.models import Lesson
from lessonarcade.services.event_store import LessonRunRecord
from lessonarcade.services.ranking import top_engaged_lessons, top_struggling_lessons
from lessonarcade.services.run_aggregation import (
    mode_breakdown,
    per_lesson_stats,
    summarize_runs,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _run(lesson_id=1, score=80, max_score=100, mode="focus", session=None, completed=True):
    slug = f"lesson-{lesson_id}"
    return LessonRunRecord(
        lesson_id=lesson_id,
        lesson_slug=slug,
        lesson_title=f"Lesson {lesson_id}",
        score=score,
        max_score=max_score,
        mode=mode,
        started_at=NOW - timedelta(hours=1),
        completed_at=NOW if completed else None,
        anonymous_session_id=session,
    )


class TestSummarizeRuns:
    def test_zero_max_score_excluded_from_average(self):
        runs = [_run(score=80), _run(score=100), _run(score=0, max_score=0)]
        summary = summarize_runs(runs)
        assert summary.total_runs == 3
        assert summary.avg_score_percent == 90.0

    def test_average_null_without_scored_runs(self):
        summary = summarize_runs([_run(score=0, max_score=0), _run(score=5, max_score=0)])
        assert summary.total_runs == 2
        assert summary.avg_score_percent is None

    def test_empty(self):
        summary = summarize_runs([])
        assert summary.total_runs == 0
        assert summary.avg_score_percent is None
        assert summary.unique_sessions == 0

    def test_average_rounded_to_one_decimal(self):
        runs = [_run(score=1, max_score=3), _run(score=1, max_score=3), _run(score=2, max_score=3)]
        assert summarize_runs(runs).avg_score_percent == 44.4

    def test_unique_sessions_ignore_missing(self):
        runs = [_run(session="a"), _run(session="a"), _run(session="b"), _run(session=None)]
        assert summarize_runs(runs).unique_sessions == 2

    def test_in_progress_runs_counted_but_not_averaged(self):
        summary = summarize_runs([_run(score=10, completed=False), _run(score=80)])
        assert summary.total_runs == 2
        assert summary.avg_score_percent == 80.0


class TestPerLessonStats:
    def test_groups_in_first_seen_order(self):
        runs = [_run(lesson_id=2), _run(lesson_id=1), _run(lesson_id=2)]
        stats = per_lesson_stats(runs)
        assert [s.lesson_id for s in stats] == [2, 1]
        assert stats[0].run_count == 2
        assert stats[0].lesson_slug == "lesson-2"

    def test_valid_score_count(self):
        stats = per_lesson_stats([_run(score=50), _run(max_score=0)])
        assert stats[0].run_count == 2
        assert stats[0].valid_score_count == 1
        assert stats[0].avg_score_percent == 50.0

    def test_seeded_lessons_listed_without_runs(self):
        lessons = [Lesson(id=3, slug="c", title="C"), Lesson(id=1, slug="lesson-1", title="Lesson 1")]
        stats = per_lesson_stats([_run(lesson_id=2), _run(lesson_id=1)], lessons)
        assert [s.lesson_id for s in stats] == [3, 1, 2]
        assert stats[0].run_count == 0
        assert stats[0].avg_score_percent is None
        assert stats[1].run_count == 1

    def test_last_completed_at_ignores_in_progress(self):
        stats = per_lesson_stats([_run(), _run(completed=False)])
        assert stats[0].last_completed_at == NOW
        assert per_lesson_stats([_run(completed=False)])[0].last_completed_at is None


class TestStrugglingLessons:
    def test_requires_three_runs(self):
        runs = [_run(lesson_id=1, score=10)] * 2 + [_run(lesson_id=2, score=60)] * 3
        ranked = top_struggling_lessons(per_lesson_stats(runs))
        assert [l.lesson_slug for l in ranked] == ["lesson-2"]

    def test_requires_a_scored_run(self):
        runs = [_run(lesson_id=1, max_score=0)] * 4
        assert top_struggling_lessons(per_lesson_stats(runs)) == []

    def test_lowest_average_first_top_three(self):
        runs = []
        for lesson_id, score in [(1, 90), (2, 40), (3, 70), (4, 20)]:
            runs += [_run(lesson_id=lesson_id, score=score)] * 3
        ranked = top_struggling_lessons(per_lesson_stats(runs))
        assert [l.lesson_slug for l in ranked] == ["lesson-4", "lesson-2", "lesson-3"]
        assert ranked[0].avg_score_percent == 20.0
        assert ranked[0].run_count == 3

    def test_ties_keep_run_order(self):
        runs = [_run(lesson_id=5, score=50)] * 3 + [_run(lesson_id=3, score=50)] * 3
        ranked = top_struggling_lessons(per_lesson_stats(runs))
        assert [l.lesson_slug for l in ranked] == ["lesson-5", "lesson-3"]


class TestEngagedLessons:
    def test_no_minimum_sample(self):
        ranked = top_engaged_lessons(per_lesson_stats([_run(lesson_id=9)]))
        assert len(ranked) == 1
        assert ranked[0].run_count == 1

    def test_most_runs_first(self):
        runs = [_run(lesson_id=1)] + [_run(lesson_id=2)] * 3 + [_run(lesson_id=3)] * 2
        runs += [_run(lesson_id=4)] * 2
        ranked = top_engaged_lessons(per_lesson_stats(runs))
        assert [l.lesson_slug for l in ranked] == ["lesson-2", "lesson-3", "lesson-4"]

    def test_average_may_be_null(self):
        ranked = top_engaged_lessons(per_lesson_stats([_run(max_score=0)]))
        assert ranked[0].avg_score_percent is None

    def test_ties_keep_run_order(self):
        runs = [_run(lesson_id=7), _run(lesson_id=2), _run(lesson_id=7), _run(lesson_id=2)]
        ranked = top_engaged_lessons(per_lesson_stats(runs))
        assert [l.lesson_slug for l in ranked] == ["lesson-7", "lesson-2"]


def test_mode_breakdown():
    runs = [_run(mode="focus"), _run(mode="arcade"), _run(mode="arcade")]
    breakdown = mode_breakdown(runs)
    assert breakdown.focus_runs == 1
    assert breakdown.arcade_runs == 2
