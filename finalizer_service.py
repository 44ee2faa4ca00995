from __future__ import annotations
import datetime
import logging
import sqlite3
from typing import Optional

from db import (
    AsyncRoutineRepository,
    AsyncSessionRepository,
    AsyncSetRecordRepository,
)
from exceptions import SessionStorageError
from models import ActiveSession, ActiveSet
from tools import InputParser

logger = logging.getLogger(__name__)


class SessionFinalizer:
    """Write a finished live session to the store in one transaction."""

    def __init__(
        self,
        session_repo: AsyncSessionRepository,
        set_repo: AsyncSetRecordRepository,
        routine_repo: AsyncRoutineRepository | None = None,
        quick_workout_name: str = "Quick Workout",
    ) -> None:
        self.sessions = session_repo
        self.sets = set_repo
        self.routines = routine_repo
        self.quick_workout_name = quick_workout_name

    @staticmethod
    def _valid_exercise_id(active_set: ActiveSet) -> Optional[int]:
        try:
            exercise_id = int(active_set.exercise_id)
        except (TypeError, ValueError):
            return None
        return exercise_id if exercise_id > 0 else None

    async def _routine_id(self, session: ActiveSession) -> Optional[int]:
        if session.routine_id is None or session.routine_id <= 0:
            return None
        if self.routines is not None and not await self.routines.exists(session.routine_id):
            logger.warning("Routine %s no longer exists, saving session unlinked", session.routine_id)
            return None
        return session.routine_id

    async def finish(
        self,
        session: ActiveSession | None,
        notes: str = "",
        now: datetime.datetime | None = None,
    ) -> Optional[int]:
        """Persist the completed sets of ``session`` and return the new session id.

        Incomplete sets are dropped. Unparseable numbers are stored as zero and
        sets with an invalid exercise id are skipped. Nothing is written if any
        insert fails; the error is raised as :class:`SessionStorageError`.
        """
        if session is None:
            return None
        now = now or datetime.datetime.now()
        duration = max(int((now - session.start_time).total_seconds()), 0)
        name = (session.name or "").strip() or self.quick_workout_name
        completed = session.completed_sets()

        numbering: dict[int, int] = {}
        try:
            routine_id = await self._routine_id(session)
            async with self.sessions.transaction() as conn:
                session_id = await self.sessions.create(
                    conn,
                    name,
                    session.start_time.isoformat(),
                    duration,
                    str(notes or ""),
                    routine_id,
                )
                for active_set in completed:
                    exercise_id = self._valid_exercise_id(active_set)
                    if exercise_id is None:
                        logger.warning(
                            "Skipping set with invalid exercise id: %r",
                            active_set.exercise_id,
                        )
                        continue
                    numbering[exercise_id] = numbering.get(exercise_id, 0) + 1
                    await self.sets.create(
                        conn,
                        session_id,
                        exercise_id,
                        numbering[exercise_id],
                        InputParser.to_float(active_set.weight),
                        InputParser.to_int(active_set.reps),
                        InputParser.to_optional_float(active_set.intensity),
                        active_set.set_type,
                    )
        except sqlite3.Error as e:
            logger.error("Failed to save session %r: %s", name, e)
            raise SessionStorageError(f"failed to save session: {e}", name) from e
        logger.info(
            "Saved session %s (%r): %d sets, %ds",
            session_id,
            name,
            sum(numbering.values()),
            duration,
        )
        return session_id
