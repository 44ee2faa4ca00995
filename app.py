import datetime
from typing import Callable

from db import (
    AsyncExerciseCatalogRepository,
    AsyncRoutineRepository,
    AsyncSessionRepository,
    AsyncSetRecordRepository,
)
from finalizer_service import SessionFinalizer
from history_service import HistoryService
from session_service import ActiveSessionService
from settings_schema import SettingsSchema, load_settings
from summary_service import SessionSummaryService


class TrainingApp:
    """Wire repositories and services for one local database."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        *,
        settings: SettingsSchema | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.settings = settings or load_settings(yaml_path)
        self.db_path = db_path or self.settings.db_path
        self.catalog = AsyncExerciseCatalogRepository(self.db_path)
        self.routines = AsyncRoutineRepository(self.db_path)
        self.sessions = AsyncSessionRepository(self.db_path)
        self.set_records = AsyncSetRecordRepository(self.db_path)
        self.history = HistoryService(self.sessions, self.set_records)
        self.finalizer = SessionFinalizer(
            self.sessions,
            self.set_records,
            self.routines,
            quick_workout_name=self.settings.quick_workout_name,
        )
        self.engine = ActiveSessionService(
            self.routines,
            self.history,
            self.finalizer,
            default_weight=self.settings.default_weight,
            default_reps=self.settings.default_reps,
            quick_workout_name=self.settings.quick_workout_name,
            clock=clock,
        )
        self.summaries = SessionSummaryService(
            self.sessions, self.set_records, self.history
        )
