from __future__ import annotations
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

from .config import DB_FILE

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# average lux above which a minute counts as full sunlight
FULL_SUNLIGHT_LUX = 10000


def _ensure_dirs() -> None:
    os.makedirs(os.path.dirname(DB_FILE), exist_ok=True)


@contextmanager
def _db_connection(row_factory: Optional[Callable[[sqlite3.Cursor, tuple], Any]] = None) -> Iterator[sqlite3.Connection]:
    """
    Context manager for database connections.

    Automatically handles:
    - Connection creation and cleanup
    - Transaction commit on success
    - Transaction rollback on error

    Args:
        row_factory: Optional row factory (e.g., sqlite3.Row) to set on connection
    """
    _ensure_dirs()
    conn = sqlite3.connect(DB_FILE)
    if row_factory:
        conn.row_factory = row_factory
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def initialize_database() -> None:
    """
    Create the results table once at application startup.

    Safe to call repeatedly; existing rows are left untouched.
    """
    _ensure_dirs()
    _ensure_sunlight_db()


def _ensure_sunlight_db() -> None:
    """Create the SQLite table for sensor results if it does not exist."""
    with _db_connection() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sunlight (
                id INTEGER PRIMARY KEY,
                job_id VARCHAR(255) NOT NULL,
                lux VARCHAR(255) NOT NULL,
                full_spectrum VARCHAR(255) NOT NULL,
                visible VARCHAR(255) NOT NULL,
                infrared VARCHAR(255) NOT NULL,
                read_failed INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )


def insert_sample(
    job_id: str,
    lux: str,
    full_spectrum: str,
    visible: str,
    infrared: str,
    read_failed: bool = False,
) -> None:
    """Append one formatted sample row. created_at is assigned by the database."""
    with _db_connection() as conn:
        conn.execute(
            """
            INSERT INTO sunlight (job_id, lux, full_spectrum, visible, infrared, read_failed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (job_id, lux, full_spectrum, visible, infrared, int(read_failed)),
        )


def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "job_id": row["job_id"],
        "lux": float(row["lux"]),
        "full_spectrum": float(row["full_spectrum"]),
        "visible": float(row["visible"]),
        "infrared": float(row["infrared"]),
        "read_failed": bool(row["read_failed"]),
        "created_at": str(row["created_at"]),
    }


def fetch_latest_sample() -> Optional[Dict[str, Any]]:
    """Return the most recent entry saved to the db, or None if it is empty."""
    with _db_connection(row_factory=sqlite3.Row) as conn:
        row = conn.execute(
            """
            SELECT id, job_id, lux, full_spectrum, visible, infrared, read_failed, created_at
            FROM sunlight
            ORDER BY id DESC
            LIMIT 1
            """
        ).fetchone()
        return _row_to_dict(row) if row else None


def fetch_samples(
    job_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 500,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Fetch stored samples newest first, optionally for one job and/or between two UTC datetimes."""
    query = """
        SELECT id, job_id, lux, full_spectrum, visible, infrared, read_failed, created_at
        FROM sunlight
    """
    clauses: List[str] = []
    params: List[Any] = []
    if job_id is not None:
        clauses.append("job_id = ?")
        params.append(job_id)
    if start is not None:
        clauses.append("created_at >= ?")
        params.append(start.strftime(DB_TIMESTAMP_FORMAT))
    if end is not None:
        clauses.append("created_at <= ?")
        params.append(end.strftime(DB_TIMESTAMP_FORMAT))
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY id DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])

    with _db_connection(row_factory=sqlite3.Row) as conn:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_dict(r) for r in rows]


def summarize_range(start: datetime, end: datetime) -> Dict[str, Any]:
    """
    Aggregate stored samples between two UTC datetimes.

    Returns average lux, the first and last timestamps in range (None when
    there are no rows) and the number of distinct minutes whose average lux
    exceeded FULL_SUNLIGHT_LUX. Rows recorded for failed reads are ignored.
    """
    start_s = start.strftime(DB_TIMESTAMP_FORMAT)
    end_s = end.strftime(DB_TIMESTAMP_FORMAT)

    with _db_connection() as conn:
        avg_lux, oldest, newest = conn.execute(
            """
            SELECT COALESCE(AVG(lux), 0), MIN(created_at), MAX(created_at)
            FROM sunlight
            WHERE read_failed = 0 AND created_at BETWEEN ? AND ?
            """,
            (start_s, end_s),
        ).fetchone()

        full_sun_minutes = conn.execute(
            """
            SELECT COUNT(*)
            FROM (
                SELECT AVG(lux) AS avg_lux
                FROM sunlight
                WHERE read_failed = 0 AND created_at BETWEEN ? AND ?
                GROUP BY strftime('%Y-%m-%d %H:%M', created_at)
            )
            WHERE avg_lux > ?
            """,
            (start_s, end_s, FULL_SUNLIGHT_LUX),
        ).fetchone()[0]

    return {
        "average_lux": float(avg_lux or 0.0),
        "oldest": datetime.strptime(oldest, DB_TIMESTAMP_FORMAT) if oldest else None,
        "newest": datetime.strptime(newest, DB_TIMESTAMP_FORMAT) if newest else None,
        "full_sun_minutes": int(full_sun_minutes or 0),
    }
