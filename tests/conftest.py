import os
import sys
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from app import TrainingApp
from models import SetType
from settings_schema import SettingsSchema


class FakeClock:
    """Manually advanced replacement for ``datetime.datetime.now``."""

    def __init__(self, start: datetime.datetime) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.datetime(2024, 1, 1, 18, 0, 0))


@pytest.fixture
def app(tmp_path, clock) -> TrainingApp:
    return TrainingApp(
        db_path=str(tmp_path / "workout.db"),
        settings=SettingsSchema(),
        clock=clock,
    )


@pytest.fixture
def store_session(app):
    """Return a coroutine that writes a session header and its sets directly."""

    async def _store(name, date, sets, duration_seconds=0, notes=""):
        async with app.sessions.transaction() as conn:
            session_id = await app.sessions.create(
                conn, name, date, duration_seconds, notes
            )
            for number, (exercise_id, weight, reps) in enumerate(sets, start=1):
                await app.set_records.create(
                    conn, session_id, exercise_id, number, weight, reps, None, SetType.NORMAL
                )
        return session_id

    return _store
