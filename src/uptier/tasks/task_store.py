# src/uptier/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from datetime import date, datetime, time as dtime
from pathlib import Path
from typing import Any

from .task_models import RecurrenceRule, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Storage formats (all local wall-clock, no timezone):
    - due_date / recurrence_end_date: 'YYYY-MM-DD'
    - due_time: 'HH:MM'
    - reminder_at: 'YYYY-MM-DDTHH:MM:SS'
    These sort lexicographically, so range predicates run directly in SQL.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "uptier.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA busy_timeout=5000")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    list_id TEXT,
                    due_date TEXT,
                    due_time TEXT,
                    reminder_at TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    priority_tier INTEGER,
                    estimated_minutes INTEGER,
                    recurrence_rule TEXT,
                    recurrence_end_date TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("list_id", "TEXT")
            add_col("due_date", "TEXT")
            add_col("due_time", "TEXT")
            add_col("reminder_at", "TEXT")
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")
            add_col("priority_tier", "INTEGER")
            add_col("estimated_minutes", "INTEGER")
            add_col("recurrence_rule", "TEXT")
            add_col("recurrence_end_date", "TEXT")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(completed, due_date)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_reminder ON tasks(completed, reminder_at)")

            conn.commit()
        finally:
            conn.close()

    # ---- value conversion ----

    @staticmethod
    def _date_to_str(d: date | None) -> str | None:
        return d.isoformat() if d is not None else None

    @staticmethod
    def _time_to_str(t: dtime | None) -> str | None:
        return t.strftime("%H:%M") if t is not None else None

    @staticmethod
    def _dt_to_str(dt: datetime | None) -> str | None:
        if dt is None:
            return None
        return dt.replace(microsecond=0, tzinfo=None).isoformat()

    @staticmethod
    def _str_to_date(s: str | None) -> date | None:
        if not s:
            return None
        try:
            return date.fromisoformat(s[:10])
        except ValueError:
            logger.warning("Ignoring malformed date value %r", s)
            return None

    @staticmethod
    def _str_to_time(s: str | None) -> dtime | None:
        if not s:
            return None
        try:
            return dtime.fromisoformat(s)
        except ValueError:
            logger.warning("Ignoring malformed time value %r", s)
            return None

    @staticmethod
    def _str_to_dt(s: str | None) -> datetime | None:
        if not s:
            return None
        try:
            return datetime.fromisoformat(s).replace(tzinfo=None)
        except ValueError:
            logger.warning("Ignoring malformed datetime value %r", s)
            return None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            list_id=row["list_id"],
            due_date=self._str_to_date(row["due_date"]),
            due_time=self._str_to_time(row["due_time"]),
            estimated_minutes=int(row["estimated_minutes"]) if row["estimated_minutes"] is not None else None,
            priority_tier=int(row["priority_tier"]) if row["priority_tier"] is not None else None,
            recurrence_rule=row["recurrence_rule"],
            recurrence_end_date=self._str_to_date(row["recurrence_end_date"]),
            reminder_at=self._str_to_dt(row["reminder_at"]),
            completed=bool(row["completed"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def _select(self, sql: str, params: tuple[Any, ...] = ()) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _update_one(self, task_id: int, assignments: str, params: tuple[Any, ...]) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"UPDATE tasks SET {assignments}, updated_at = ? WHERE id = ?",
                (*params, time.time(), int(task_id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise KeyError(task_id)
        finally:
            conn.close()

    # ---- public API: CRUD used by the front end ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        title: str,
        list_id: str | None = None,
        due_date: date | None = None,
        due_time: dtime | None = None,
        estimated_minutes: int | None = None,
        priority_tier: int | None = None,
        recurrence_rule: RecurrenceRule | str | None = None,
        recurrence_end_date: date | None = None,
        reminder_at: datetime | None = None,
        completed: bool = False,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")
        if priority_tier is not None and not 1 <= int(priority_tier) <= 3:
            raise ValueError("priority_tier must be between 1 and 3")
        if estimated_minutes is not None and int(estimated_minutes) <= 0:
            raise ValueError("estimated_minutes must be positive")

        rule_str = recurrence_rule.to_json() if isinstance(recurrence_rule, RecurrenceRule) else recurrence_rule
        now = time.time()

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    title, list_id, due_date, due_time, reminder_at,
                    completed, priority_tier, estimated_minutes,
                    recurrence_rule, recurrence_end_date,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    title.strip(),
                    list_id,
                    self._date_to_str(due_date),
                    self._time_to_str(due_time),
                    self._dt_to_str(reminder_at),
                    1 if completed else 0,
                    priority_tier,
                    estimated_minutes,
                    rule_str,
                    self._date_to_str(recurrence_end_date),
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug(
                "Task added id=%s due=%s recurring=%s reminder_at=%s",
                task_id,
                due_date,
                bool(rule_str),
                reminder_at,
            )
            return task_id
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        rows = self._select("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
        return rows[0] if rows else None

    def complete_task(self, task_id: int) -> None:
        self._update_one(task_id, "completed = 1, completed_at = ?", (time.time(),))

    # ---- public API: scheduling predicates ----

    def list_dated_tasks(self, start: date, end: date) -> list[Task]:
        """Incomplete, non-recurring tasks with due_date in [start, end]."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE completed = 0
              AND (recurrence_rule IS NULL OR recurrence_rule = '')
              AND due_date >= ? AND due_date <= ?
            ORDER BY due_date ASC, due_time IS NULL, due_time ASC,
                     priority_tier IS NULL, priority_tier ASC
            """,
            (start.isoformat(), end.isoformat()),
        )

    def list_recurring_candidates(self, start: date, end: date) -> list[Task]:
        """
        Incomplete recurring tasks whose series may overlap [start, end]:
        anchored on or before `end` and not ended before `start`.
        """
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE completed = 0
              AND recurrence_rule IS NOT NULL AND recurrence_rule != ''
              AND due_date IS NOT NULL AND due_date <= ?
              AND (recurrence_end_date IS NULL OR recurrence_end_date >= ?)
            ORDER BY id ASC
            """,
            (end.isoformat(), start.isoformat()),
        )

    def list_due_reminders(self, now: datetime) -> list[Task]:
        """Incomplete tasks whose reminder_at <= now, oldest reminder first."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE completed = 0
              AND reminder_at IS NOT NULL
              AND reminder_at <= ?
            ORDER BY reminder_at ASC, id ASC
            """,
            (self._dt_to_str(now),),
        )

    def count_due_reminders(self, now: datetime) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT COUNT(*)
                FROM tasks
                WHERE completed = 0
                  AND reminder_at IS NOT NULL
                  AND reminder_at <= ?
                """,
                (self._dt_to_str(now),),
            )
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def list_reminders_between(self, start: datetime, end: datetime, limit: int = 10) -> list[Task]:
        """Incomplete tasks with reminder_at in [start, end], ascending, capped at limit."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE completed = 0
              AND reminder_at IS NOT NULL
              AND reminder_at >= ? AND reminder_at <= ?
            ORDER BY reminder_at ASC, id ASC
                LIMIT ?
            """,
            (self._dt_to_str(start), self._dt_to_str(end), max(0, int(limit))),
        )

    def list_risk_candidates(self, until: date) -> list[Task]:
        """Incomplete tasks with both due_date and estimated_minutes, due on or before `until`."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE completed = 0
              AND due_date IS NOT NULL
              AND estimated_minutes IS NOT NULL
              AND due_date <= ?
            ORDER BY due_date ASC, due_time IS NULL, due_time ASC
            """,
            (until.isoformat(),),
        )

    # ---- public API: writes owned by the scheduling core ----

    def update_reminder_at(self, task_id: int, reminder_at: datetime | None) -> None:
        """Set or clear reminder_at. Raises KeyError if the task does not exist."""
        self._update_one(task_id, "reminder_at = ?", (self._dt_to_str(reminder_at),))

    def update_recurrence(
        self,
        task_id: int,
        rule: RecurrenceRule | None,
        end_date: date | None = None,
    ) -> None:
        """Replace (or clear, with rule=None) the task's recurrence. Raises KeyError if missing."""
        self._update_one(
            task_id,
            "recurrence_rule = ?, recurrence_end_date = ?",
            (
                rule.to_json() if rule is not None else None,
                self._date_to_str(end_date) if rule is not None else None,
            ),
        )
