"""
Activity Store - structured reads over the user's activity logs.

SQLite-backed store for ``action_logs`` and ``life_areas``. Every query is
scoped to one ``user_id``; nothing here aggregates across users.
Timestamps are stored as UTC ISO-8601 strings so they compare lexically.
"""
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Iterable, List, Optional, Set

from logchat.core.errors import StoreError
from logchat.core.logging import logger
from logchat.models.records import ActivityLog, LifeArea
from logchat.services import notes as notes_util

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
# %Y is not zero-padded below year 1000 on every platform
_TS_TAIL_FORMAT = "-%m-%dT%H:%M:%S.%fZ"


def to_db_time(dt: datetime) -> str:
    """Normalize a datetime to the stored UTC string (naive means UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return f"{dt.year:04d}" + dt.strftime(_TS_TAIL_FORMAT)


def from_db_time(value: str) -> datetime:
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=timezone.utc)


class ActivityStore:
    """Store and query activity logs and life areas."""

    def __init__(self, db_path=None):
        """Initialize the store, creating the schema if needed."""
        if db_path is None:
            db_path = Path("data") / "logchat.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self):
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Activity store error: {e}")
            raise StoreError(f"Activity store error: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS action_logs (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    duration_min INTEGER CHECK(duration_min IS NULL OR duration_min >= 0),
                    notes TEXT,
                    earned_xp INTEGER NOT NULL DEFAULT 0,
                    template_id TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_action_logs_user_time
                ON action_logs(user_id, occurred_at)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS life_areas (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT ''
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_life_areas_user
                ON life_areas(user_id)
            """)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_log(self, log: ActivityLog) -> None:
        self.add_logs([log])

    def add_logs(self, logs: Iterable[ActivityLog]) -> None:
        rows = [
            (log.id, log.user_id, to_db_time(log.occurred_at), log.duration_min,
             log.notes, log.earned_xp or 0, log.template_id)
            for log in logs
        ]
        with self._connect() as conn:
            conn.executemany("""
                INSERT INTO action_logs
                    (id, user_id, occurred_at, duration_min, notes, earned_xp, template_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, rows)

    def set_earned_xp(self, log_id: str, earned_xp: int) -> bool:
        """Record the scoring result for a log. Returns False for unknown ids."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE action_logs SET earned_xp = ? WHERE id = ?", (earned_xp, log_id)
            )
            return cursor.rowcount > 0

    def add_area(self, area: LifeArea) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO life_areas (user_id, name, category) VALUES (?, ?, ?)",
                (area.user_id, area.name, area.category or ""),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_areas(self, user_id: str) -> List[LifeArea]:
        """The user's life areas in creation order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT user_id, name, category FROM life_areas WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [LifeArea(user_id=r["user_id"], name=r["name"], category=r["category"]) for r in rows]

    def count_logs(self, user_id: str, since: Optional[datetime] = None,
                   area: Optional[str] = None) -> int:
        """Count logs, optionally since a point in time and within one area."""
        if area:
            return len(self.fetch_logs(user_id, since=since, area=area))

        query = "SELECT COUNT(*) AS n FROM action_logs WHERE user_id = ?"
        params: list = [user_id]
        if since is not None:
            query += " AND occurred_at >= ?"
            params.append(to_db_time(since))
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()["n"]

    def fetch_logs(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        area: Optional[str] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[ActivityLog]:
        """Fetch logs in ``[since, until)``.

        ``area`` keeps only logs whose notes metadata names that area
        (case-insensitive). The limit applies after the area filter.
        """
        query = "SELECT * FROM action_logs WHERE user_id = ?"
        params: list = [user_id]
        if since is not None:
            query += " AND occurred_at >= ?"
            params.append(to_db_time(since))
        if until is not None:
            query += " AND occurred_at < ?"
            params.append(to_db_time(until))
        query += " ORDER BY occurred_at " + ("DESC" if newest_first else "ASC")
        if limit is not None and not area:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        logs = [self._row_to_log(row) for row in rows]
        if area:
            wanted = area.lower()
            logs = [log for log in logs if notes_util.area_of(log.notes).lower() == wanted]
            if limit is not None:
                logs = logs[:limit]
        return logs

    def search_notes(self, user_id: str, phrase: str, limit: int = 50) -> List[ActivityLog]:
        """Newest logs whose raw notes contain ``phrase`` (case-insensitive)."""
        needle = phrase.casefold()
        matches = []
        for log in self.fetch_logs(user_id):
            if log.notes and needle in log.notes.casefold():
                matches.append(log)
                if len(matches) >= limit:
                    break
        return matches

    def log_dates(self, user_id: str, since: Optional[datetime] = None,
                  tz: tzinfo = timezone.utc) -> Set[str]:
        """Distinct calendar dates (YYYY-MM-DD, in ``tz``) that have a log."""
        query = "SELECT occurred_at FROM action_logs WHERE user_id = ?"
        params: list = [user_id]
        if since is not None:
            query += " AND occurred_at >= ?"
            params.append(to_db_time(since))
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return {from_db_time(r["occurred_at"]).astimezone(tz).strftime("%Y-%m-%d") for r in rows}

    def compute_streak(self, user_id: str, tz: tzinfo = timezone.utc,
                       today: Optional[datetime] = None) -> int:
        """Consecutive days with at least one log, counted back from today.

        Walks the whole history; a day without a log ends the streak, and no
        log today means a streak of 0.
        """
        dates = self.log_dates(user_id, tz=tz)
        day = (today or datetime.now(tz)).astimezone(tz).date()
        streak = 0
        while day.strftime("%Y-%m-%d") in dates:
            streak += 1
            day -= timedelta(days=1)
        return streak

    def _row_to_log(self, row: sqlite3.Row) -> ActivityLog:
        return ActivityLog(
            id=row["id"],
            user_id=row["user_id"],
            occurred_at=from_db_time(row["occurred_at"]),
            duration_min=row["duration_min"],
            notes=row["notes"],
            earned_xp=row["earned_xp"] or 0,
            template_id=row["template_id"],
        )
