import os
import sys
import unittest
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import ExerciseHistoryEntry, SetRecord, UNKNOWN_EXERCISE
from summary_service import HEAVIER, MORE_VOLUME, SessionSummaryService


def _record(session_id, weight, reps, exercise_id=1, number=1):
    return SetRecord(
        id=session_id * 100 + number,
        session_id=session_id,
        exercise_id=exercise_id,
        set_number=number,
        weight=weight,
        reps=reps,
    )


def _entry(session_id, weight, reps, number=1):
    return ExerciseHistoryEntry(
        **_record(session_id, weight, reps, number=number).model_dump(),
        session_date=f"2024-01-{session_id:02d}",
    )


class CompareTestCase(unittest.TestCase):
    def test_first_session_has_no_tags(self) -> None:
        current = [_record(1, 100.0, 5)]
        result = SessionSummaryService.compare(1, current, [_entry(1, 100.0, 5)])
        self.assertEqual(result, (100.0, False, None))

    def test_heavier_top_set_is_pr(self) -> None:
        history = [_entry(1, 100.0, 5), _entry(2, 105.0, 5)]
        best, is_pr, improvement = SessionSummaryService.compare(
            2, [_record(2, 105.0, 5)], history
        )
        self.assertEqual(best, 105.0)
        self.assertTrue(is_pr)
        self.assertEqual(improvement, HEAVIER)

    def test_more_volume_without_pr(self) -> None:
        history = [_entry(1, 100.0, 5), _entry(2, 100.0, 5), _entry(2, 100.0, 5, number=2)]
        current = [_record(2, 100.0, 5), _record(2, 100.0, 5, number=2)]
        self.assertEqual(
            SessionSummaryService.compare(2, current, history), (100.0, False, MORE_VOLUME)
        )

    def test_heavier_wins_over_lower_volume(self) -> None:
        history = [_entry(1, 100.0, 10)]
        current = [_record(2, 105.0, 8), _record(2, 10.0, 6, number=2)]
        best, is_pr, improvement = SessionSummaryService.compare(2, current, history)
        self.assertEqual(best, 105.0)
        self.assertTrue(is_pr)
        self.assertEqual(improvement, HEAVIER)

    def test_zero_prior_max_is_not_a_pr(self) -> None:
        history = [_entry(1, 0.0, 20)]
        best, is_pr, improvement = SessionSummaryService.compare(
            2, [_record(2, 10.0, 10)], history
        )
        self.assertFalse(is_pr)
        self.assertEqual(improvement, HEAVIER)

    def test_only_preceding_session_drives_improvement(self) -> None:
        history = [_entry(1, 120.0, 5), _entry(2, 90.0, 5)]
        best, is_pr, improvement = SessionSummaryService.compare(
            3, [_record(3, 100.0, 5)], history
        )
        self.assertFalse(is_pr)
        self.assertEqual(improvement, HEAVIER)

    def test_later_sessions_are_ignored(self) -> None:
        history = [_entry(1, 100.0, 5), _entry(3, 200.0, 5)]
        best, is_pr, improvement = SessionSummaryService.compare(
            2, [_record(2, 110.0, 5)], history
        )
        self.assertTrue(is_pr)
        self.assertEqual(improvement, HEAVIER)

    def test_equal_or_lower_has_no_tag(self) -> None:
        history = [_entry(1, 100.0, 5)]
        result = SessionSummaryService.compare(2, [_record(2, 90.0, 5)], history)
        self.assertEqual(result, (90.0, False, None))


@pytest.mark.asyncio
async def test_summary_flags_pr_and_improvement(app, store_session):
    bench = await app.catalog.add("Test Bench", "Chest")
    row = await app.catalog.add("Test Row", "Back")
    await store_session("Push", "2024-01-01T10:00:00", [(bench, 100.0, 5), (row, 60.0, 10)])
    sid = await store_session(
        "Push",
        "2024-01-08T10:00:00",
        [(bench, 105.0, 5), (row, 60.0, 10), (row, 60.0, 8)],
        duration_seconds=2700,
    )
    summary = await app.summaries.summarize(sid)
    assert summary.name == "Push"
    assert summary.duration_minutes == 45
    assert summary.total_sets == 3
    assert summary.total_volume == 105.0 * 5 + 60.0 * 18
    assert summary.records == 1
    by_name = {e.name: e for e in summary.exercises}
    assert by_name["Test Bench"].is_pr is True
    assert by_name["Test Bench"].improvement == HEAVIER
    assert by_name["Test Bench"].sets == 1
    assert by_name["Test Row"].is_pr is False
    assert by_name["Test Row"].improvement == MORE_VOLUME
    assert by_name["Test Row"].total_volume == 60.0 * 18


@pytest.mark.asyncio
async def test_summary_of_first_session(app, store_session):
    sid = await store_session("Solo", "2024-01-01T10:00:00", [(999, 20.0, 10)])
    summary = await app.summaries.summarize(sid)
    assert summary.records == 0
    (exercise,) = summary.exercises
    assert exercise.name == UNKNOWN_EXERCISE
    assert exercise.improvement is None
    assert exercise.best_weight == 20.0


@pytest.mark.asyncio
async def test_summary_ignores_later_sessions(app, store_session):
    first = await store_session("Push", "2024-01-01T10:00:00", [(1, 100.0, 5)])
    await store_session("Push", "2024-01-08T10:00:00", [(1, 120.0, 5)])
    summary = await app.summaries.summarize(first)
    assert summary.records == 0
    assert summary.exercises[0].improvement is None


@pytest.mark.asyncio
async def test_summary_unknown_session(app):
    assert await app.summaries.summarize(42) is None


@pytest.mark.asyncio
async def test_summary_empty_session(app, store_session):
    sid = await store_session("Empty", "2024-01-01T10:00:00", [])
    summary = await app.summaries.summarize(sid)
    assert summary.total_sets == 0
    assert summary.total_volume == 0.0
    assert summary.exercises == []
