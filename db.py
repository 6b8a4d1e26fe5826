import sqlite3
import aiosqlite
import datetime
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple

from exceptions import StoreUnavailable, MalformedRecord, InvalidCategoryName
from models import RoutineRecord, WorkoutCategory, NO_CATEGORY

logger = logging.getLogger(__name__)

# A routine counts on the calendar day written in its first ten characters,
# ignoring any time or offset that follows. julianday() normalizes
# impossible dates such as 2024-02-30, so they fail the round trip.
_DAY = "substr(workout_date, 1, 10)"
_VALID_DAY = f"COALESCE(date(julianday({_DAY})) = {_DAY}, 0)"
_DAY_COLUMN = f"CASE WHEN {_VALID_DAY} THEN {_DAY} END"

# Rows failing this filter are malformed and never aggregated.
_WELL_FORMED = (
    f"{_VALID_DAY} "
    "AND typeof(duration) = 'integer' AND duration >= 0"
)
_IN_WINDOW = f"{_DAY} BETWEEN ? AND ? AND {_WELL_FORMED}"

COUNT_IN_WINDOW_SQL = f"SELECT COUNT(*) FROM daily_routine WHERE {_IN_WINDOW};"
SUM_DURATION_IN_WINDOW_SQL = (
    f"SELECT COALESCE(SUM(duration), 0) FROM daily_routine WHERE {_IN_WINDOW};"
)
MOST_FREQUENT_IN_WINDOW_SQL = (
    f"SELECT category FROM daily_routine WHERE {_IN_WINDOW} "
    "GROUP BY category ORDER BY COUNT(*) DESC, MIN(id) ASC LIMIT 1;"
)
MEALS_IN_WINDOW_SQL = (
    f"SELECT meal FROM daily_routine WHERE {_IN_WINDOW} ORDER BY id;"
)


def _iso(day: datetime.date | str) -> str:
    return day.isoformat() if isinstance(day, datetime.date) else day


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "workout_category": (
            """CREATE TABLE workout_category (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                );""",
            ["id", "name"],
        ),
        "daily_routine": (
            """CREATE TABLE daily_routine (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_date TEXT,
                    category TEXT,
                    duration INTEGER,
                    meal TEXT
                );""",
            ["id", "workout_date", "category", "duration", "meal"],
        ),
    }

    def __init__(self, db_path: str = "fittrack.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        try:
            connection = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            logger.error("cannot open %s: %s", self._db_path, e)
            raise StoreUnavailable(str(e)) from e
        try:
            yield connection
            connection.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(str(e)) from e
        except sqlite3.Error as e:
            logger.error("query on %s failed: %s", self._db_path, e)
            raise StoreUnavailable(str(e)) from e
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

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

        logger.info("migrating table %s from columns %s", table, existing_cols)
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "duration":
                        return "0"
                    if col in ("category", "meal"):
                        return "''"
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


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def fetch_one(self, query: str, params: Tuple = ()):
        rows = BaseRepository.fetch_all(self, query, params)
        return rows[0][0] if rows else None


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        try:
            conn = await aiosqlite.connect(self._db_path)
        except sqlite3.Error as e:
            logger.error("cannot open %s: %s", self._db_path, e)
            raise StoreUnavailable(str(e)) from e
        try:
            yield conn
            await conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(str(e)) from e
        except sqlite3.Error as e:
            logger.error("query on %s failed: %s", self._db_path, e)
            raise StoreUnavailable(str(e)) from e
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

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

    async def fetch_one(self, query: str, params: Tuple = ()):
        rows = await self.fetch_all(query, params)
        return rows[0][0] if rows else None


class RoutineRepository(BaseRepository):
    """Repository for the daily routine log."""

    def create(
        self,
        date: str,
        category: str = "",
        duration: int = 0,
        meal: str = "",
    ) -> int:
        rid = self.execute(
            "INSERT INTO daily_routine (workout_date, category, duration, meal) VALUES (?, ?, ?, ?);",
            (date, category, duration, meal),
        )
        logger.info("logged routine %s on %s", rid, date)
        return rid

    def update(
        self,
        routine_id: int,
        date: str,
        category: str,
        duration: int,
        meal: str,
    ) -> None:
        rows = super().fetch_all(
            "SELECT id FROM daily_routine WHERE id = ?;", (routine_id,)
        )
        if not rows:
            raise ValueError("routine not found")
        self.execute(
            "UPDATE daily_routine SET workout_date = ?, category = ?, duration = ?, meal = ? WHERE id = ?;",
            (date, category, duration, meal, routine_id),
        )

    def delete(self, routine_id: int) -> None:
        rows = super().fetch_all(
            "SELECT id FROM daily_routine WHERE id = ?;", (routine_id,)
        )
        if not rows:
            raise ValueError("routine not found")
        self.execute("DELETE FROM daily_routine WHERE id = ?;", (routine_id,))
        logger.info("deleted routine %s", routine_id)

    def fetch_detail(self, routine_id: int) -> RoutineRecord:
        rows = super().fetch_all(
            f"SELECT id, {_DAY_COLUMN}, category, duration, meal FROM daily_routine WHERE id = ?;",
            (routine_id,),
        )
        if not rows:
            raise ValueError("routine not found")
        return RoutineRecord.from_row(rows[0])

    def fetch_history(self) -> List[RoutineRecord]:
        """Return well-formed routines, newest first."""
        rows = super().fetch_all(
            f"SELECT id, {_DAY_COLUMN}, category, duration, meal FROM daily_routine "
            f"ORDER BY {_DAY} DESC, id DESC;"
        )
        history = []
        for row in rows:
            try:
                history.append(RoutineRecord.from_row(row))
            except MalformedRecord as e:
                logger.warning("skipping routine %s: %s", e.record_id, e)
        return history

    def malformed_records(self) -> List[MalformedRecord]:
        """Return one error per stored row excluded from aggregation."""
        rows = super().fetch_all(
            f"SELECT id, {_DAY_COLUMN}, category, duration, meal FROM daily_routine "
            f"WHERE NOT ({_WELL_FORMED}) ORDER BY id;"
        )
        errors = []
        for row in rows:
            try:
                RoutineRecord.from_row(row)
            except MalformedRecord as e:
                errors.append(e)
        return errors

    def count_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> int:
        return int(
            self.fetch_one(COUNT_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date)))
        )

    def sum_duration_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> int:
        total = self.fetch_one(
            SUM_DURATION_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return int(total or 0)

    def most_frequent_category_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> str:
        category = self.fetch_one(
            MOST_FREQUENT_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return category or NO_CATEGORY

    def meals_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> List[str]:
        rows = self.fetch_all(
            MEALS_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return [r[0] or "" for r in rows]


class AsyncRoutineRepository(AsyncBaseRepository):
    """Async repository for the daily routine log."""

    async def create(
        self,
        date: str,
        category: str = "",
        duration: int = 0,
        meal: str = "",
    ) -> int:
        return await self.execute(
            "INSERT INTO daily_routine (workout_date, category, duration, meal) VALUES (?, ?, ?, ?);",
            (date, category, duration, meal),
        )

    async def delete(self, routine_id: int) -> None:
        rows = await self.fetch_all(
            "SELECT id FROM daily_routine WHERE id = ?;", (routine_id,)
        )
        if not rows:
            raise ValueError("routine not found")
        await self.execute("DELETE FROM daily_routine WHERE id = ?;", (routine_id,))

    async def count_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> int:
        count = await self.fetch_one(
            COUNT_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return int(count)

    async def sum_duration_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> int:
        total = await self.fetch_one(
            SUM_DURATION_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return int(total or 0)

    async def most_frequent_category_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> str:
        category = await self.fetch_one(
            MOST_FREQUENT_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return category or NO_CATEGORY

    async def meals_in_window(
        self, start_date: datetime.date | str, end_date: datetime.date | str
    ) -> List[str]:
        rows = await self.fetch_all(
            MEALS_IN_WINDOW_SQL, (_iso(start_date), _iso(end_date))
        )
        return [r[0] or "" for r in rows]


class WorkoutCategoryRepository(BaseRepository):
    """Repository for workout categories."""

    def _check_name(self, name: str, exclude_id: int | None = None) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidCategoryName("category name must not be empty")
        rows = super().fetch_all(
            "SELECT id FROM workout_category WHERE name = ?;", (name,)
        )
        if any(r[0] != exclude_id for r in rows):
            raise InvalidCategoryName("category already exists")
        return name

    def add(self, name: str) -> int:
        name = self._check_name(name)
        return self.execute(
            "INSERT INTO workout_category (name) VALUES (?);", (name,)
        )

    def update(self, category_id: int, name: str) -> None:
        rows = super().fetch_all(
            "SELECT id FROM workout_category WHERE id = ?;", (category_id,)
        )
        if not rows:
            raise ValueError("category not found")
        name = self._check_name(name, exclude_id=category_id)
        self.execute(
            "UPDATE workout_category SET name = ? WHERE id = ?;", (name, category_id)
        )

    def delete(self, category_id: int) -> None:
        rows = super().fetch_all(
            "SELECT id FROM workout_category WHERE id = ?;", (category_id,)
        )
        if not rows:
            raise ValueError("category not found")
        self.execute("DELETE FROM workout_category WHERE id = ?;", (category_id,))

    def fetch_all(self) -> List[WorkoutCategory]:
        rows = super().fetch_all("SELECT id, name FROM workout_category ORDER BY id;")
        return [WorkoutCategory(id=r[0], name=r[1]) for r in rows]

    def fetch_names(self) -> List[str]:
        return [c.name for c in self.fetch_all()]
