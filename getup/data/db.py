from __future__ import annotations
import logging
import sqlite3
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from getup.counter.session import SetResult, WorkoutSummary

logger = logging.getLogger(__name__)

SCHEMA = r"""
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS sessions (
  id TEXT PRIMARY KEY,
  exercise_id TEXT NOT NULL,
  exercise_name TEXT NOT NULL,
  started_at REAL NOT NULL,
  target_sets INTEGER NOT NULL,
  target_reps INTEGER NOT NULL,
  duration_s INTEGER NOT NULL,
  avg_form REAL NOT NULL,
  completed INTEGER NOT NULL,
  notes TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS sets (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  session_id TEXT NOT NULL,
  set_number INTEGER NOT NULL,
  reps_completed INTEGER NOT NULL,
  form_score REAL NOT NULL,
  completed_at REAL NOT NULL,
  FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sessions_started ON sessions(started_at);
"""

_SESSION_COLS = "id, exercise_id, exercise_name, started_at, target_sets, target_reps, duration_s, avg_form, completed, notes"


class WorkoutStore:
    """Finished workouts in SQLite: one row per session plus one per set."""

    def __init__(self, path: str = "./getup.db"):
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def close(self):
        with self._lock:
            self._conn.close()

    # Writes

    def save(self, summary: WorkoutSummary):
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT OR REPLACE INTO sessions ({_SESSION_COLS}) VALUES (?,?,?,?,?,?,?,?,?,?)",
                (
                    summary.id, summary.exercise_id, summary.exercise_name, summary.started_at,
                    summary.target_sets, summary.target_reps, summary.duration_seconds,
                    summary.average_form_score, int(summary.completed), summary.notes,
                ),
            )
            self._conn.execute("DELETE FROM sets WHERE session_id=?", (summary.id,))
            self._conn.executemany(
                "INSERT INTO sets (session_id, set_number, reps_completed, form_score, completed_at) VALUES (?,?,?,?,?)",
                [(summary.id, s.set_number, s.reps_completed, s.form_score, s.completed_at) for s in summary.sets],
            )
        logger.info("saved workout %s (%s)", summary.id, summary.exercise_id)

    def delete_session(self, session_id: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM sessions WHERE id=?", (session_id,))
        return cur.rowcount > 0

    # Reads

    def _sets_for(self, session_id: str) -> tuple:
        rows = self._conn.execute(
            "SELECT set_number, reps_completed, form_score, completed_at FROM sets "
            "WHERE session_id=? ORDER BY set_number",
            (session_id,),
        ).fetchall()
        return tuple(SetResult(*row) for row in rows)

    def _to_summary(self, row) -> WorkoutSummary:
        (sid, exercise_id, exercise_name, started_at, target_sets, target_reps,
         duration_s, avg_form, completed, notes) = row
        return WorkoutSummary(
            id=sid,
            exercise_id=exercise_id,
            exercise_name=exercise_name,
            started_at=started_at,
            target_sets=target_sets,
            target_reps=target_reps,
            duration_seconds=duration_s,
            sets=self._sets_for(sid),
            average_form_score=avg_form,
            completed=bool(completed),
            notes=notes,
        )

    def get_session(self, session_id: str) -> Optional[WorkoutSummary]:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_SESSION_COLS} FROM sessions WHERE id=?", (session_id,)
            ).fetchone()
            return self._to_summary(row) if row else None

    def list_sessions(self, limit: int = 50) -> List[WorkoutSummary]:
        """Most recent first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_SESSION_COLS} FROM sessions ORDER BY started_at DESC LIMIT ?", (limit,)
            ).fetchall()
            return [self._to_summary(r) for r in rows]

    def weekly_stats(self, now: Optional[float] = None) -> dict:
        """Session counts and this week's average form; weeks start Monday, local time."""
        now_dt = datetime.fromtimestamp(time.time() if now is None else now)
        week_start = (now_dt - timedelta(days=now_dt.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
        week_end = week_start + timedelta(days=7)
        with self._lock:
            total = self._conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]
            count, avg = self._conn.execute(
                "SELECT COUNT(*), AVG(avg_form) FROM sessions WHERE started_at >= ? AND started_at < ?",
                (week_start.timestamp(), week_end.timestamp()),
            ).fetchone()
        return {
            "this_week": count,
            "total": total,
            "avg_form_this_week": float(avg) if avg is not None else 0.0,
        }
