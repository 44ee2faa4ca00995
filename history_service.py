from __future__ import annotations
from typing import List, Optional, Tuple

from db import (
    AsyncSessionRepository,
    AsyncSetRecordRepository,
)
from models import (
    CompletedSession,
    SetRecord,
    ExerciseHistoryEntry,
    SessionOverview,
    SessionDetail,
    ExerciseSets,
    HistoryOverview,
    UNKNOWN_EXERCISE,
)
from tools import MathTools


class HistoryService:
    """Read past sessions and per-exercise set history."""

    TREND_LENGTH = 7

    def __init__(
        self,
        session_repo: AsyncSessionRepository,
        set_repo: AsyncSetRecordRepository,
    ) -> None:
        self.sessions = session_repo
        self.sets = set_repo

    async def _overview(self, session: CompletedSession) -> SessionOverview:
        records = await self.sets.find_by_session(session.id)
        names: list[str] = []
        for _ex_id, name in await self.sets.fetch_exercise_names(session.id):
            if name not in names:
                names.append(name)
        return SessionOverview(
            **session.model_dump(),
            volume=MathTools.volume((r.reps, r.weight) for r in records),
            exercises=names,
            sets_count=len(records),
        )

    async def recent_sessions(self, limit: int = 10) -> List[SessionOverview]:
        """Return the ``limit`` newest sessions enriched with volume and exercise names."""
        sessions = await self.sessions.fetch_recent(limit)
        return [await self._overview(s) for s in sessions]

    async def exercise_history(self, exercise_id: int) -> List[ExerciseHistoryEntry]:
        """Return every set logged for ``exercise_id``, oldest session first."""
        return await self.sets.find_by_exercise(exercise_id)

    async def last_session_by_name(
        self, name: str
    ) -> Optional[Tuple[CompletedSession, List[SetRecord]]]:
        sessions = await self.sessions.find_by_name(name, descending=True, limit=1)
        if not sessions:
            return None
        last = sessions[0]
        return last, await self.sets.find_by_session(last.id)

    async def session_detail(self, session_id: int) -> Optional[SessionDetail]:
        session = await self.sessions.fetch_detail(session_id)
        if session is None:
            return None
        records = await self.sets.find_by_session(session_id)
        names = dict(await self.sets.fetch_exercise_names(session_id))
        groups: dict[int, ExerciseSets] = {}
        for record in records:
            group = groups.get(record.exercise_id)
            if group is None:
                group = ExerciseSets(
                    exercise_id=record.exercise_id,
                    name=names.get(record.exercise_id, UNKNOWN_EXERCISE),
                )
                groups[record.exercise_id] = group
            group.sets.append(record)
        return SessionDetail(session=session, exercises=list(groups.values()))

    async def overview(self, limit: int = 50) -> HistoryOverview:
        """Totals across the most recent sessions and their volume trend."""
        recent = await self.recent_sessions(limit)
        trend = [(s.date, s.volume) for s in reversed(recent[: self.TREND_LENGTH])]
        return HistoryOverview(
            sessions=len(recent),
            total_volume=sum(s.volume for s in recent),
            total_minutes=sum(s.duration_minutes for s in recent),
            volume_trend=trend,
        )
