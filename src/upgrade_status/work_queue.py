"""Durable SQLite work queue and run state.

Uses stdlib sqlite3 so queued scans survive process restarts.
"""

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator

from upgrade_status.models import Project

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS queue_items (
    item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    project TEXT NOT NULL UNIQUE,
    project_type TEXT NOT NULL,
    path TEXT NOT NULL,
    created REAL NOT NULL,
    expire REAL NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS run_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def _connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), isolation_level=None, timeout=30)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(_SCHEMA)
    return conn


@dataclass(frozen=True)
class QueueItem:
    """Reference to one project waiting to be scanned."""

    item_id: int
    project: str
    project_type: str
    path: str


class ScanQueue:
    """Work queue holding at most one item per project name."""

    def __init__(
        self,
        db_path: Path,
        lease_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the queue.

        Args:
            db_path: SQLite database file
            lease_seconds: How long a claimed item stays invisible to other workers
            clock: Returns the current unix time
        """
        self.db_path = Path(db_path).expanduser()
        self.lease_seconds = lease_seconds
        self._clock = clock
        self._conn = _connect(self.db_path)

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    def enqueue(self, project: Project) -> tuple[int, bool]:
        """Add a project to the queue.

        Returns:
            Tuple of (item id, True if newly added). A project that is
            already queued keeps its existing item.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT OR IGNORE INTO queue_items
                   (project, project_type, path, created)
                   VALUES (?, ?, ?, ?)""",
                (project.name, project.type.value, str(project.path), self._clock()),
            )
            added = cursor.rowcount == 1
            row = conn.execute(
                "SELECT item_id FROM queue_items WHERE project = ?", (project.name,)
            ).fetchone()

        if not added:
            logger.debug(f"Project {project.name} is already queued")
        return row[0], added

    def claim_next(self) -> QueueItem | None:
        """Atomically lease the oldest unclaimed item.

        Items whose lease has expired are claimable again.
        """
        now = self._clock()
        with self._transaction() as conn:
            row = conn.execute(
                """SELECT item_id, project, project_type, path FROM queue_items
                   WHERE expire = 0 OR expire < ?
                   ORDER BY item_id LIMIT 1""",
                (now,),
            ).fetchone()
            if row is None:
                return None
            conn.execute(
                "UPDATE queue_items SET expire = ? WHERE item_id = ?",
                (now + self.lease_seconds, row[0]),
            )

        return QueueItem(*row)

    def delete(self, item: QueueItem) -> None:
        self._conn.execute("DELETE FROM queue_items WHERE item_id = ?", (item.item_id,))

    def find(self, project_name: str) -> QueueItem | None:
        """Look up the queued item of a project."""
        row = self._conn.execute(
            "SELECT item_id, project, project_type, path FROM queue_items WHERE project = ?",
            (project_name,),
        ).fetchone()
        return QueueItem(*row) if row else None

    def count(self) -> int:
        """Number of items remaining, claimed or not."""
        return self._conn.execute("SELECT COUNT(*) FROM queue_items").fetchone()[0]

    def purge(self) -> int:
        """Delete every item.

        Returns:
            Number of items deleted
        """
        cursor = self._conn.execute("DELETE FROM queue_items")
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()


class StateStore:
    """Small key-value store for run bookkeeping (job count, last scan)."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self._conn = _connect(self.db_path)

    def get(self, key: str, default: Any = None) -> Any:
        row = self._conn.execute(
            "SELECT value FROM run_state WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO run_state (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM run_state WHERE key = ?", (key,))

    def close(self) -> None:
        self._conn.close()
