import sqlite3
import aiosqlite
import csv
import os
import json
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from models import (
    Exercise,
    Routine,
    RoutineExercise,
    CompletedSession,
    SetRecord,
    ExerciseHistoryEntry,
    SetType,
    UNKNOWN_EXERCISE,
)

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    muscle_group TEXT NOT NULL DEFAULT '',
                    type TEXT NOT NULL DEFAULT 'General',
                    instructions TEXT,
                    images TEXT,
                    is_custom INTEGER NOT NULL DEFAULT 0
                );""",
            ["id", "name", "muscle_group", "type", "instructions", "images", "is_custom"],
        ),
        "routines": (
            """CREATE TABLE routines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    program_id TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                );""",
            ["id", "name", "program_id", "created_at"],
        ),
        "routine_exercises": (
            """CREATE TABLE routine_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    routine_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    sets INTEGER NOT NULL DEFAULT 3,
                    reps INTEGER NOT NULL DEFAULT 10,
                    FOREIGN KEY(routine_id) REFERENCES routines(id) ON DELETE CASCADE
                );""",
            ["id", "routine_id", "exercise_id", "position", "sets", "reps"],
        ),
        "sessions": (
            """CREATE TABLE sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    routine_id INTEGER,
                    name TEXT NOT NULL,
                    date TEXT NOT NULL,
                    duration_seconds INTEGER NOT NULL DEFAULT 0,
                    notes TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'COMPLETED',
                    FOREIGN KEY(routine_id) REFERENCES routines(id) ON DELETE SET NULL
                );""",
            ["id", "routine_id", "name", "date", "duration_seconds", "notes", "status"],
        ),
        "set_records": (
            """CREATE TABLE set_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    set_number INTEGER NOT NULL,
                    weight REAL NOT NULL DEFAULT 0,
                    reps INTEGER NOT NULL DEFAULT 0,
                    intensity REAL,
                    set_type TEXT NOT NULL DEFAULT 'Normal',
                    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "session_id",
                "exercise_id",
                "set_number",
                "weight",
                "reps",
                "intensity",
                "set_type",
            ],
        ),
    }

    CATALOG_CSV = os.path.join(os.path.dirname(__file__), "exercise_catalog.csv")

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._import_exercise_catalog_data()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            cursor.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "set_type":
                        return "'Normal'"
                    if col == "status":
                        return "'COMPLETED'"
                    if col in ("position", "duration_seconds", "is_custom"):
                        return "0"
                    if col in ("notes", "muscle_group"):
                        return "''"
                    if col == "type":
                        return "'General'"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _import_exercise_catalog_data(self) -> None:
        if not os.path.exists(self.CATALOG_CSV):
            return
        with open(self.CATALOG_CSV, newline="", encoding="utf-8") as csvfile:
            reader = csv.DictReader(csvfile)
            records = [
                (
                    row["Exercise Name"],
                    row.get("Muscle Group", ""),
                    row.get("Type") or "General",
                    json.dumps([s for s in row.get("Instructions", "").split("|") if s]),
                    json.dumps([s for s in row.get("Images", "").split("|") if s]),
                )
                for row in reader
                if row.get("Exercise Name")
            ]
        with self._connection() as conn:
            for name, muscle_group, ex_type, instructions, images in records:
                conn.execute(
                    "INSERT INTO exercises (name, muscle_group, type, instructions, images, is_custom) "
                    "VALUES (?, ?, ?, ?, ?, 0) "
                    "ON CONFLICT(name) DO UPDATE SET muscle_group=excluded.muscle_group, type=excluded.type, "
                    "instructions=excluded.instructions, images=excluded.images "
                    "WHERE exercises.is_custom = 0;",
                    (name, muscle_group, ex_type, instructions, images),
                )


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            await conn.execute("PRAGMA foreign_keys=on;")
            yield conn
            await conn.commit()
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self):
        """Yield a connection whose statements commit together or not at all."""
        async with self._async_connection() as conn:
            await conn.execute("BEGIN;")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous repository helpers using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return list(rows)


def _load_list(raw: Optional[str], exercise_id: int, column: str) -> list[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Failed to parse %s for exercise %s", column, exercise_id)
        return []
    if not isinstance(data, list):
        logger.warning("Unexpected %s shape for exercise %s", column, exercise_id)
        return []
    return [str(item) for item in data]


class AsyncExerciseCatalogRepository(AsyncBaseRepository):
    """Async repository for the exercise catalog."""

    _COLUMNS = "id, name, muscle_group, type, instructions, images, is_custom"

    @staticmethod
    def _to_exercise(row: Tuple) -> Exercise:
        ex_id, name, muscle_group, ex_type, instructions, images, is_custom = row
        return Exercise(
            id=ex_id,
            name=name,
            muscle_group=muscle_group or "",
            type=ex_type or "General",
            instructions=_load_list(instructions, ex_id, "instructions"),
            images=_load_list(images, ex_id, "images"),
            is_custom=bool(is_custom),
        )

    async def fetch_all(self) -> List[Exercise]:
        rows = await super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises ORDER BY name ASC;"
        )
        return [self._to_exercise(r) for r in rows]

    async def fetch_detail(self, exercise_id: int) -> Optional[Exercise]:
        rows = await super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            return None
        return self._to_exercise(rows[0])

    async def fetch_name(self, exercise_id: int) -> str:
        exercise = await self.fetch_detail(exercise_id)
        return exercise.name if exercise is not None else UNKNOWN_EXERCISE

    async def search(self, query: str) -> List[Exercise]:
        like = f"%{query.lower()}%"
        rows = await super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises WHERE lower(name) LIKE ? OR lower(muscle_group) LIKE ? ORDER BY name ASC;",
            (like, like),
        )
        return [self._to_exercise(r) for r in rows]

    async def add(
        self,
        name: str,
        muscle_group: str,
        type: str = "General",
        instructions: Optional[List[str]] = None,
        images: Optional[List[str]] = None,
    ) -> int:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        existing = await super().fetch_all(
            "SELECT id FROM exercises WHERE name = ?;", (name,)
        )
        if existing:
            raise ValueError("exercise already exists")
        return await self.execute(
            "INSERT INTO exercises (name, muscle_group, type, instructions, images, is_custom) VALUES (?, ?, ?, ?, ?, 1);",
            (
                name,
                muscle_group,
                type or "General",
                json.dumps(instructions or []),
                json.dumps(images or []),
            ),
        )

    async def _require_custom(self, exercise_id: int) -> Exercise:
        exercise = await self.fetch_detail(exercise_id)
        if exercise is None:
            raise ValueError("exercise not found")
        if not exercise.is_custom:
            raise ValueError("cannot modify preconfigured exercise")
        return exercise

    async def update(
        self,
        exercise_id: int,
        name: str,
        muscle_group: str,
        type: str = "General",
        instructions: Optional[List[str]] = None,
        images: Optional[List[str]] = None,
    ) -> None:
        await self._require_custom(exercise_id)
        await self.execute(
            "UPDATE exercises SET name = ?, muscle_group = ?, type = ?, instructions = ?, images = ? WHERE id = ?;",
            (
                name.strip(),
                muscle_group,
                type or "General",
                json.dumps(instructions or []),
                json.dumps(images or []),
                exercise_id,
            ),
        )

    async def remove(self, exercise_id: int) -> None:
        await self._require_custom(exercise_id)
        await self.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))


class AsyncRoutineRepository(AsyncBaseRepository):
    """Async repository for routines and their target sets."""

    @staticmethod
    def _sanitize(
        routine_id: int, exercises: Iterable[Tuple[object, object, object]]
    ) -> List[Tuple[int, int, int]]:
        cleaned: List[Tuple[int, int, int]] = []
        for index, (exercise_id, sets, reps) in enumerate(exercises):
            try:
                ex_id = int(str(exercise_id))
            except ValueError:
                logger.warning(
                    "Skipping invalid exercise id %r at index %d for routine %s",
                    exercise_id,
                    index,
                    routine_id,
                )
                continue
            try:
                target_sets = int(str(sets)) or 3
            except ValueError:
                target_sets = 3
            try:
                target_reps = int(str(reps)) or 10
            except ValueError:
                target_reps = 10
            cleaned.append((ex_id, target_sets, target_reps))
        return cleaned

    async def _insert_exercises(
        self,
        conn: aiosqlite.Connection,
        routine_id: int,
        exercises: Iterable[Tuple[object, object, object]],
    ) -> None:
        for position, (ex_id, sets, reps) in enumerate(self._sanitize(routine_id, exercises)):
            await conn.execute(
                "INSERT INTO routine_exercises (routine_id, exercise_id, position, sets, reps) VALUES (?, ?, ?, ?, ?);",
                (routine_id, ex_id, position, sets, reps),
            )

    async def create(
        self,
        name: str,
        exercises: Iterable[Tuple[object, object, object]],
        program_id: Optional[str] = None,
    ) -> int:
        safe_name = str(name or "").strip() or "New Routine"
        async with self.transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO routines (name, program_id) VALUES (?, ?);",
                (safe_name, program_id or None),
            )
            routine_id = cursor.lastrowid
            await self._insert_exercises(conn, routine_id, exercises)
        return routine_id

    async def update(
        self,
        routine_id: int,
        name: str,
        exercises: Iterable[Tuple[object, object, object]],
    ) -> None:
        if not await self.exists(routine_id):
            raise ValueError("routine not found")
        safe_name = str(name or "").strip() or "Routine"
        async with self.transaction() as conn:
            await conn.execute(
                "UPDATE routines SET name = ? WHERE id = ?;", (safe_name, routine_id)
            )
            await conn.execute(
                "DELETE FROM routine_exercises WHERE routine_id = ?;", (routine_id,)
            )
            await self._insert_exercises(conn, routine_id, exercises)

    async def delete(self, routine_id: int) -> None:
        if not await self.exists(routine_id):
            raise ValueError("routine not found")
        async with self.transaction() as conn:
            await conn.execute(
                "DELETE FROM routine_exercises WHERE routine_id = ?;", (routine_id,)
            )
            await conn.execute(
                "UPDATE sessions SET routine_id = NULL WHERE routine_id = ?;",
                (routine_id,),
            )
            await conn.execute("DELETE FROM routines WHERE id = ?;", (routine_id,))

    async def exists(self, routine_id: int) -> bool:
        rows = await self.fetch_all(
            "SELECT 1 FROM routines WHERE id = ?;", (routine_id,)
        )
        return bool(rows)

    async def _fetch_exercises(self, routine_id: int) -> List[RoutineExercise]:
        rows = await self.fetch_all(
            "SELECT re.exercise_id, e.name, e.images, re.sets, re.reps, re.position "
            "FROM routine_exercises re LEFT JOIN exercises e ON re.exercise_id = e.id "
            "WHERE re.routine_id = ? ORDER BY re.position, re.id;",
            (routine_id,),
        )
        exercises: List[RoutineExercise] = []
        for ex_id, name, images, sets, reps, position in rows:
            image_list = _load_list(images, ex_id, "images")
            exercises.append(
                RoutineExercise(
                    exercise_id=ex_id,
                    exercise_name=name or UNKNOWN_EXERCISE,
                    exercise_image=image_list[0] if image_list else None,
                    target_sets=sets or 3,
                    target_reps=reps or 10,
                    position=position,
                )
            )
        return exercises

    async def fetch_detail(self, routine_id: int) -> Optional[Routine]:
        rows = await self.fetch_all(
            "SELECT id, name, program_id FROM routines WHERE id = ?;", (routine_id,)
        )
        if not rows:
            return None
        rid, name, program_id = rows[0]
        return Routine(
            id=rid,
            name=name,
            program_id=program_id,
            exercises=await self._fetch_exercises(rid),
        )

    async def fetch_all_routines(self, program_id: Optional[str] = None) -> List[Routine]:
        query = "SELECT id, name, program_id FROM routines"
        params: Tuple = ()
        if program_id is not None:
            query += " WHERE program_id = ?"
            params = (program_id,)
        rows = await self.fetch_all(query + " ORDER BY id;", params)
        return [
            Routine(
                id=rid,
                name=name,
                program_id=pid,
                exercises=await self._fetch_exercises(rid),
            )
            for rid, name, pid in rows
        ]


class AsyncSessionRepository(AsyncBaseRepository):
    """Async repository for completed sessions."""

    _COLUMNS = "id, routine_id, name, date, duration_seconds, notes, status"

    @staticmethod
    def _to_session(row: Tuple) -> CompletedSession:
        sid, routine_id, name, date, duration, notes, status = row
        return CompletedSession(
            id=sid,
            routine_id=routine_id,
            name=name,
            date=date,
            duration_seconds=int(duration or 0),
            notes=notes or "",
            status=status or "COMPLETED",
        )

    async def create(
        self,
        conn: aiosqlite.Connection,
        name: str,
        date: str,
        duration_seconds: int,
        notes: str = "",
        routine_id: Optional[int] = None,
    ) -> int:
        """Insert a session header on ``conn``; the caller owns the transaction."""
        cursor = await conn.execute(
            "INSERT INTO sessions (routine_id, name, date, duration_seconds, notes, status) VALUES (?, ?, ?, ?, ?, 'COMPLETED');",
            (routine_id, name, date, duration_seconds, notes),
        )
        return cursor.lastrowid

    async def find_by_name(
        self, name: str, descending: bool = True, limit: int | None = None
    ) -> List[CompletedSession]:
        order = "DESC" if descending else "ASC"
        query = f"SELECT {self._COLUMNS} FROM sessions WHERE name = ? ORDER BY date {order}, id {order}"
        params: list = [name]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = await self.fetch_all(query + ";", tuple(params))
        return [self._to_session(r) for r in rows]

    async def fetch_recent(self, limit: int | None = None) -> List[CompletedSession]:
        query = f"SELECT {self._COLUMNS} FROM sessions ORDER BY date DESC, id DESC"
        params: Tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        rows = await self.fetch_all(query + ";", params)
        return [self._to_session(r) for r in rows]

    async def fetch_detail(self, session_id: int) -> Optional[CompletedSession]:
        rows = await self.fetch_all(
            f"SELECT {self._COLUMNS} FROM sessions WHERE id = ?;", (session_id,)
        )
        if not rows:
            return None
        return self._to_session(rows[0])

    async def set_note(self, session_id: int, notes: str | None) -> None:
        if await self.fetch_detail(session_id) is None:
            raise ValueError("session not found")
        await self.execute(
            "UPDATE sessions SET notes = ? WHERE id = ?;",
            (notes or "", session_id),
        )

    async def delete(self, session_id: int) -> None:
        if await self.fetch_detail(session_id) is None:
            raise ValueError("session not found")
        await self.execute("DELETE FROM sessions WHERE id = ?;", (session_id,))


class AsyncSetRecordRepository(AsyncBaseRepository):
    """Async repository for the sets of completed sessions."""

    @staticmethod
    def _set_type(raw: Optional[str]) -> SetType:
        try:
            return SetType(raw or SetType.NORMAL.value)
        except ValueError:
            return SetType.NORMAL

    @classmethod
    def _to_record(cls, row: Tuple) -> SetRecord:
        rid, session_id, exercise_id, set_number, weight, reps, intensity, set_type = row
        return SetRecord(
            id=rid,
            session_id=session_id,
            exercise_id=exercise_id,
            set_number=set_number,
            weight=float(weight or 0),
            reps=int(reps or 0),
            intensity=intensity,
            set_type=cls._set_type(set_type),
        )

    async def create(
        self,
        conn: aiosqlite.Connection,
        session_id: int,
        exercise_id: int,
        set_number: int,
        weight: float,
        reps: int,
        intensity: Optional[float] = None,
        set_type: SetType = SetType.NORMAL,
    ) -> int:
        """Insert a set record on ``conn``; the caller owns the transaction."""
        cursor = await conn.execute(
            "INSERT INTO set_records (session_id, exercise_id, set_number, weight, reps, intensity, set_type) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                session_id,
                exercise_id,
                set_number,
                weight,
                reps,
                intensity,
                SetType(set_type).value,
            ),
        )
        return cursor.lastrowid

    async def find_by_session(self, session_id: int) -> List[SetRecord]:
        rows = await self.fetch_all(
            "SELECT id, session_id, exercise_id, set_number, weight, reps, intensity, set_type "
            "FROM set_records WHERE session_id = ? ORDER BY id;",
            (session_id,),
        )
        return [self._to_record(r) for r in rows]

    async def find_by_exercise(
        self, exercise_id: int, descending: bool = False
    ) -> List[ExerciseHistoryEntry]:
        order = "DESC" if descending else "ASC"
        rows = await self.fetch_all(
            "SELECT r.id, r.session_id, r.exercise_id, r.set_number, r.weight, r.reps, r.intensity, r.set_type, s.date "
            "FROM set_records r JOIN sessions s ON r.session_id = s.id "
            f"WHERE r.exercise_id = ? ORDER BY s.date {order}, s.id {order}, r.id {order};",
            (exercise_id,),
        )
        history: List[ExerciseHistoryEntry] = []
        for row in rows:
            record = self._to_record(row[:-1])
            history.append(
                ExerciseHistoryEntry(**record.model_dump(), session_date=row[-1])
            )
        return history

    async def fetch_exercise_names(self, session_id: int) -> List[Tuple[int, str]]:
        """Return ``(exercise_id, name)`` per set of a session, in set order."""
        rows = await self.fetch_all(
            "SELECT r.exercise_id, e.name FROM set_records r "
            "LEFT JOIN exercises e ON r.exercise_id = e.id "
            "WHERE r.session_id = ? ORDER BY r.id;",
            (session_id,),
        )
        return [(ex_id, name or UNKNOWN_EXERCISE) for ex_id, name in rows]
