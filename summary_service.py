from __future__ import annotations
from typing import List, Optional

from db import AsyncSessionRepository, AsyncSetRecordRepository
from history_service import HistoryService
from models import (
    ExerciseHistoryEntry,
    ExerciseSummary,
    SessionSummary,
    SetRecord,
    UNKNOWN_EXERCISE,
)
from tools import MathTools

HEAVIER = "Heavier"
MORE_VOLUME = "More Volume"


class SessionSummaryService:
    """Compute volume, records and session-over-session trends for a session."""

    def __init__(
        self,
        session_repo: AsyncSessionRepository,
        set_repo: AsyncSetRecordRepository,
        history: HistoryService,
    ) -> None:
        self.sessions = session_repo
        self.sets = set_repo
        self.history = history

    @staticmethod
    def _volume(records: List[SetRecord]) -> float:
        return MathTools.volume((r.reps, r.weight) for r in records)

    @staticmethod
    def _best_weight(records: List[SetRecord]) -> float:
        return max((r.weight for r in records), default=0.0)

    @classmethod
    def compare(
        cls,
        session_id: int,
        current: List[SetRecord],
        history: List[ExerciseHistoryEntry],
    ) -> tuple[float, bool, Optional[str]]:
        """Return ``(best_weight, is_pr, improvement)`` of ``current`` against ``history``.

        Only history from sessions older than ``session_id`` counts. A PR needs
        a positive prior maximum; the improvement tag compares against the
        immediately preceding session, heavier top set first, then volume.
        """
        best = cls._best_weight(current)
        prior = [h for h in history if h.session_id < session_id]
        if not prior:
            return best, False, None
        prior_max = cls._best_weight(prior)
        is_pr = best > prior_max and prior_max > 0
        last_id = max(h.session_id for h in prior)
        last = [h for h in prior if h.session_id == last_id]
        improvement = None
        if best > cls._best_weight(last):
            improvement = HEAVIER
        elif cls._volume(current) > cls._volume(last):
            improvement = MORE_VOLUME
        return best, is_pr, improvement

    async def summarize(self, session_id: int) -> Optional[SessionSummary]:
        session = await self.sessions.fetch_detail(session_id)
        if session is None:
            return None
        records = await self.sets.find_by_session(session_id)
        names = dict(await self.sets.fetch_exercise_names(session_id))
        grouped: dict[int, List[SetRecord]] = {}
        for record in records:
            grouped.setdefault(record.exercise_id, []).append(record)

        exercises: List[ExerciseSummary] = []
        for exercise_id, current in grouped.items():
            history = await self.history.exercise_history(exercise_id)
            best, is_pr, improvement = self.compare(session_id, current, history)
            exercises.append(
                ExerciseSummary(
                    exercise_id=exercise_id,
                    name=names.get(exercise_id, UNKNOWN_EXERCISE),
                    sets=len(current),
                    best_weight=best,
                    total_volume=self._volume(current),
                    is_pr=is_pr,
                    improvement=improvement,
                )
            )
        return SessionSummary(
            session_id=session.id,
            name=session.name,
            date=session.date,
            duration_seconds=session.duration_seconds,
            total_volume=self._volume(records),
            total_sets=len(records),
            records=sum(1 for e in exercises if e.is_pr),
            exercises=exercises,
        )
