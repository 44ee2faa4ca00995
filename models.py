"""Typed records exchanged between the store and the session engine."""

from __future__ import annotations
import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

UNKNOWN_EXERCISE = "Unknown Exercise"


class SetType(str, Enum):
    """Display tag of a single set."""

    NORMAL = "Normal"
    WARMUP = "Warmup"
    DROP = "Drop"
    SUPER = "Super"
    FAILURE = "Failure"


class Exercise(BaseModel):
    """An exercise in the catalog."""

    id: int
    name: str
    muscle_group: str = ""
    type: str = "General"
    instructions: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    is_custom: bool = False

    @property
    def image(self) -> Optional[str]:
        return self.images[0] if self.images else None


class RoutineExercise(BaseModel):
    exercise_id: int
    exercise_name: str = UNKNOWN_EXERCISE
    exercise_image: Optional[str] = None
    target_sets: int = 3
    target_reps: int = 10
    position: int = 0


class Routine(BaseModel):
    """A reusable list of exercises with set and rep targets."""

    id: int
    name: str
    program_id: Optional[str] = None
    exercises: list[RoutineExercise] = Field(default_factory=list)


class ActiveSet(BaseModel):
    """One row of the live session. Weight and reps are raw input buffers."""

    exercise_id: int
    exercise_name: str = ""
    exercise_image: Optional[str] = None
    set_number: int = 1
    weight: str = ""
    reps: str = ""
    intensity: str = ""
    completed: bool = False
    set_type: SetType = SetType.NORMAL


class ActiveSession(BaseModel):
    """The workout happening right now. Never persisted as such."""

    start_time: datetime.datetime
    routine_id: Optional[int] = None
    name: str
    sets: list[ActiveSet] = Field(default_factory=list)
    is_running: bool = True

    def completed_sets(self) -> list[ActiveSet]:
        return [s for s in self.sets if s.completed]


class CompletedSession(BaseModel):
    id: int
    routine_id: Optional[int] = None
    name: str
    date: str
    duration_seconds: int = 0
    notes: str = ""
    status: str = "COMPLETED"

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60


class SetRecord(BaseModel):
    id: int
    session_id: int
    exercise_id: int
    set_number: int
    weight: float = 0.0
    reps: int = 0
    intensity: Optional[float] = None
    set_type: SetType = SetType.NORMAL

    @property
    def volume(self) -> float:
        return self.weight * self.reps


class ExerciseHistoryEntry(SetRecord):
    """A set record annotated with the date of its session."""

    session_date: str


class SessionOverview(CompletedSession):
    """A completed session enriched for history listings."""

    volume: float = 0.0
    exercises: list[str] = Field(default_factory=list)
    sets_count: int = 0


class ExerciseSets(BaseModel):
    exercise_id: int
    name: str
    sets: list[SetRecord] = Field(default_factory=list)


class SessionDetail(BaseModel):
    session: CompletedSession
    exercises: list[ExerciseSets] = Field(default_factory=list)


class ExerciseSummary(BaseModel):
    """Per-exercise breakdown of a finished session."""

    exercise_id: int
    name: str
    sets: int
    best_weight: float
    total_volume: float
    is_pr: bool = False
    improvement: Optional[str] = None


class SessionSummary(BaseModel):
    session_id: int
    name: str
    date: str
    duration_seconds: int
    total_volume: float
    total_sets: int
    records: int
    exercises: list[ExerciseSummary] = Field(default_factory=list)

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60


class HistoryOverview(BaseModel):
    sessions: int = 0
    total_volume: float = 0.0
    total_minutes: int = 0
    volume_trend: list[tuple[str, float]] = Field(default_factory=list)
