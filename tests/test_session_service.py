import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from exceptions import SessionAlreadyRunningError
from models import SetType


async def _exercise(app, name, image=None):
    return await app.catalog.add(name, "Chest", images=[image] if image else None)


def _numbers(session, exercise_id):
    return [s.set_number for s in session.sets if s.exercise_id == exercise_id]


@pytest.mark.asyncio
async def test_start_routine_without_history_uses_targets(app):
    bench = await _exercise(app, "Test Bench", "bench.png")
    rid = await app.routines.create("Push", [(bench, 3, 10)])
    session = await app.engine.start(rid)
    assert session.name == "Push"
    assert session.routine_id == rid
    assert session.is_running is True
    assert [(s.set_number, s.weight, s.reps) for s in session.sets] == [
        (1, "", "10"),
        (2, "", "10"),
        (3, "", "10"),
    ]
    assert all(s.exercise_name == "Test Bench" for s in session.sets)
    assert all(s.exercise_image == "bench.png" for s in session.sets)
    assert all(s.set_type == SetType.NORMAL and not s.completed for s in session.sets)


@pytest.mark.asyncio
async def test_start_prefills_by_position_then_last_set(app, clock):
    bench = await _exercise(app, "Test Bench")
    rid = await app.routines.create("Push", [(bench, 3, 10)])
    await app.engine.start(rid)
    for index, (weight, reps) in enumerate([("100", "8"), ("105", "6"), ("110", "5")]):
        app.engine.update_set(index, "weight", weight)
        app.engine.update_set(index, "reps", reps)
        app.engine.toggle_complete(index)
    clock.advance(3600)
    await app.engine.finish()

    await app.routines.update(rid, "Push", [(bench, 5, 10)])
    clock.advance(86400)
    session = await app.engine.start(rid)
    assert [(s.set_number, s.weight, s.reps) for s in session.sets] == [
        (1, "100", "8"),
        (2, "105", "6"),
        (3, "110", "5"),
        (4, "110", "5"),
        (5, "110", "5"),
    ]


@pytest.mark.asyncio
async def test_prefill_matches_routine_name_and_latest_session(app, store_session):
    bench = await _exercise(app, "Test Bench")
    row = await _exercise(app, "Test Row")
    await store_session("Push", "2024-01-01T10:00:00", [(bench, 80.0, 10)])
    await store_session("Push", "2023-12-01T10:00:00", [(bench, 60.0, 10)])
    await store_session("Other", "2024-01-02T10:00:00", [(bench, 200.0, 1)])
    rid = await app.routines.create("Push", [(bench, 1, 12), (row, 2, 12)])
    session = await app.engine.start(rid)
    assert [(s.exercise_id, s.weight, s.reps) for s in session.sets] == [
        (bench, "80", "10"),
        (row, "", "12"),
        (row, "", "12"),
    ]


@pytest.mark.asyncio
async def test_quick_workout_and_unknown_routine_start_empty(app):
    session = await app.engine.start()
    assert session.name == "Quick Workout"
    assert session.routine_id is None
    assert session.sets == []
    app.engine.cancel()
    session = await app.engine.start(4242)
    assert session.name == "Quick Workout"
    assert session.routine_id is None
    assert session.sets == []


@pytest.mark.asyncio
async def test_start_rejected_while_running(app):
    await app.engine.start()
    with pytest.raises(SessionAlreadyRunningError):
        await app.engine.start()
    app.engine.cancel()
    assert app.engine.session is None
    assert app.engine.is_running is False
    await app.engine.start()
    assert app.engine.is_running is True


@pytest.mark.asyncio
async def test_add_set_numbers_per_exercise(app):
    await app.engine.start()
    first = app.engine.add_set(1, "A", "a.png")
    app.engine.add_set(2, "B")
    app.engine.update_set(0, "weight", "50")
    app.engine.update_set(0, "reps", "12")
    third = app.engine.add_set(1, "A")
    session = app.engine.session
    assert _numbers(session, 1) == [1, 2]
    assert _numbers(session, 2) == [1]
    assert [s.exercise_id for s in session.sets] == [1, 1, 2]
    assert (first.weight, first.reps) == ("50", "12")
    assert (third.weight, third.reps) == ("50", "12")
    assert third.exercise_image == "a.png"
    assert (session.sets[2].weight, session.sets[2].reps) == ("0", "10")


@pytest.mark.asyncio
async def test_add_set_uses_configured_defaults(app):
    app.engine.default_weight = "20"
    app.engine.default_reps = "5"
    await app.engine.start()
    new_set = app.engine.add_set(9, "Z")
    assert (new_set.weight, new_set.reps, new_set.set_number) == ("20", "5", 1)


@pytest.mark.asyncio
async def test_remove_set_renumbers_exercise(app):
    await app.engine.start()
    for _ in range(3):
        app.engine.add_set(1, "A")
    app.engine.add_set(2, "B")
    app.engine.add_set(2, "B")
    removed = app.engine.remove_set(1)
    assert removed.set_number == 2
    session = app.engine.session
    assert _numbers(session, 1) == [1, 2]
    assert _numbers(session, 2) == [1, 2]
    assert app.engine.remove_set(10) is None


@pytest.mark.asyncio
async def test_update_and_toggle(app):
    await app.engine.start()
    app.engine.add_set(1, "A")
    app.engine.add_set(1, "A")
    app.engine.update_set(1, "type", "Drop")
    app.engine.update_set(1, "intensity", "9")
    app.engine.update_set(0, "weight", "abc")
    assert app.engine.session.sets[1].set_type == SetType.DROP
    assert app.engine.session.sets[1].intensity == "9"
    assert app.engine.session.sets[0].weight == "abc"
    assert app.engine.toggle_complete(0) is True
    assert app.engine.session.sets[1].completed is False
    assert app.engine.toggle_complete(0) is False
    assert app.engine.update_set(0, "colour", "red") is None
    assert app.engine.update_set(1, "type", "Giant") is app.engine.session.sets[1]
    assert app.engine.session.sets[1].set_type == SetType.DROP


@pytest.mark.asyncio
async def test_operations_without_session_are_noops(app):
    engine = app.engine
    assert engine.session is None
    assert engine.toggle_complete(0) is None
    assert engine.update_set(0, "weight", "10") is None
    assert engine.update_set(0, "colour", "red") is None
    assert engine.remove_set(0) is None
    assert engine.add_set(1, "A") is None
    assert await engine.finish("notes") is None
    assert engine.elapsed_seconds() == 0
    engine.cancel()
    assert await app.sessions.fetch_recent() == []


@pytest.mark.asyncio
async def test_elapsed_time_derived_from_start(app, clock):
    await app.engine.start()
    clock.advance(125)
    assert app.engine.elapsed_seconds() == 125
    assert app.engine.format_elapsed() == "2:05"
    clock.advance(3600)
    assert app.engine.format_elapsed() == "1:02:05"
