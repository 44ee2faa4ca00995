from __future__ import annotations
import datetime
import logging
from typing import Callable, List, Optional

from db import AsyncRoutineRepository
from exceptions import SessionAlreadyRunningError
from finalizer_service import SessionFinalizer
from history_service import HistoryService
from models import ActiveSession, ActiveSet, Routine, SetRecord, SetType
from tools import InputParser

logger = logging.getLogger(__name__)


class ActiveSessionService:
    """Own the live workout session and every mutation made to it.

    The service is ``Idle`` while :attr:`session` is ``None`` and ``Running``
    otherwise. Mutations on an absent session or an out-of-range index are
    no-ops returning ``None``.
    """

    EDITABLE_FIELDS = {
        "weight": "weight",
        "reps": "reps",
        "intensity": "intensity",
        "type": "set_type",
        "set_type": "set_type",
    }

    def __init__(
        self,
        routine_repo: AsyncRoutineRepository,
        history: HistoryService,
        finalizer: SessionFinalizer,
        default_weight: str = "0",
        default_reps: str = "10",
        quick_workout_name: str = "Quick Workout",
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.routines = routine_repo
        self.history = history
        self.finalizer = finalizer
        self.default_weight = default_weight
        self.default_reps = default_reps
        self.quick_workout_name = quick_workout_name
        self.clock = clock
        self.session: ActiveSession | None = None

    @property
    def is_running(self) -> bool:
        return self.session is not None and self.session.is_running

    def _set_at(self, index: int) -> Optional[ActiveSet]:
        if self.session is None or index < 0 or index >= len(self.session.sets):
            return None
        return self.session.sets[index]

    @staticmethod
    def _prefill(routine: Routine, last_sets: List[SetRecord]) -> List[ActiveSet]:
        sets: List[ActiveSet] = []
        for entry in routine.exercises:
            previous = [s for s in last_sets if s.exercise_id == entry.exercise_id]
            for i in range(entry.target_sets):
                prev = previous[i] if i < len(previous) else (previous[-1] if previous else None)
                sets.append(
                    ActiveSet(
                        exercise_id=entry.exercise_id,
                        exercise_name=entry.exercise_name,
                        exercise_image=entry.exercise_image,
                        set_number=i + 1,
                        weight=InputParser.format_number(prev.weight) if prev else "",
                        reps=InputParser.format_number(prev.reps) if prev else str(entry.target_reps),
                    )
                )
        return sets

    async def start(self, routine_id: int | None = None) -> ActiveSession:
        """Begin a session, pre-filled from the last session of the same routine."""
        if self.is_running:
            raise SessionAlreadyRunningError("a workout session is already running")
        name = self.quick_workout_name
        sets: List[ActiveSet] = []
        linked_id: Optional[int] = None
        if routine_id:
            routine = await self.routines.fetch_detail(routine_id)
            if routine is None:
                logger.warning("Routine %s not found, starting an empty session", routine_id)
            else:
                name = routine.name
                linked_id = routine.id
                last = await self.history.last_session_by_name(routine.name)
                last_sets = last[1] if last is not None else []
                sets = self._prefill(routine, last_sets)
        self.session = ActiveSession(
            start_time=self.clock(),
            routine_id=linked_id,
            name=name,
            sets=sets,
        )
        logger.info("Started session %r with %d sets", name, len(sets))
        return self.session

    def add_set(
        self,
        exercise_id: int,
        exercise_name: str,
        exercise_image: str | None = None,
    ) -> Optional[ActiveSet]:
        """Insert a new set right after the exercise's last set."""
        if self.session is None:
            return None
        sets = self.session.sets
        last_index = -1
        for i in range(len(sets) - 1, -1, -1):
            if sets[i].exercise_id == exercise_id:
                last_index = i
                break
        numbers = [s.set_number for s in sets if s.exercise_id == exercise_id]
        previous = sets[last_index] if last_index >= 0 else None
        new_set = ActiveSet(
            exercise_id=exercise_id,
            exercise_name=exercise_name,
            exercise_image=exercise_image or (previous.exercise_image if previous else None),
            set_number=max(numbers, default=0) + 1,
            weight=previous.weight if previous else self.default_weight,
            reps=previous.reps if previous else self.default_reps,
        )
        if last_index >= 0:
            sets.insert(last_index + 1, new_set)
        else:
            sets.append(new_set)
        return new_set

    def remove_set(self, index: int) -> Optional[ActiveSet]:
        """Remove the set at ``index`` and renumber its exercise 1..N."""
        removed = self._set_at(index)
        if removed is None:
            return None
        del self.session.sets[index]
        number = 1
        for s in self.session.sets:
            if s.exercise_id == removed.exercise_id:
                s.set_number = number
                number += 1
        return removed

    def update_set(self, index: int, field: str, value: str) -> Optional[ActiveSet]:
        """Write ``value`` into one field of the set at ``index`` without validating it.

        Unknown fields and unknown set types are logged and leave the set unchanged.
        """
        target = self._set_at(index)
        if target is None:
            return None
        attr = self.EDITABLE_FIELDS.get(field)
        if attr is None:
            logger.warning("Ignoring update of unknown set field %r", field)
            return None
        if attr == "set_type":
            try:
                target.set_type = SetType(value)
            except ValueError:
                logger.warning("Ignoring unknown set type %r", value)
        else:
            setattr(target, attr, str(value))
        return target

    def toggle_complete(self, index: int) -> Optional[bool]:
        target = self._set_at(index)
        if target is None:
            return None
        target.completed = not target.completed
        return target.completed

    def cancel(self) -> None:
        if self.session is not None:
            logger.info("Cancelled session %r", self.session.name)
        self.session = None

    def elapsed_seconds(self, now: datetime.datetime | None = None) -> int:
        if self.session is None:
            return 0
        now = now or self.clock()
        return max(int((now - self.session.start_time).total_seconds()), 0)

    def format_elapsed(self, now: datetime.datetime | None = None) -> str:
        seconds = self.elapsed_seconds(now)
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{secs:02d}"
        return f"{minutes}:{secs:02d}"

    async def finish(self, notes: str = "") -> Optional[int]:
        """Persist the session and return to idle.

        On a storage error the exception propagates and the session is kept.
        """
        if self.session is None:
            return None
        session_id = await self.finalizer.finish(self.session, notes, self.clock())
        self.session = None
        return session_id
