"""
Live Snapshot Store: where the running game's latest pet state lands.

The game process writes here through the reconciliation service; the widget
side reads it back. Snapshots are stored as JSON in the game's camelCase wire
format. A stored payload that no longer parses is reported as absent.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from pydantic import ValidationError

from pet_kernel.baseline.store import StorageError
from pet_kernel.models.pet import PetState

logger = logging.getLogger(__name__)


class LiveSnapshotStore(ABC):
    """Read-your-last-write storage for the latest live pet state."""

    @abstractmethod
    def get(self) -> Optional[PetState]:
        pass

    @abstractmethod
    def put(self, state: PetState) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class InMemoryLiveSnapshotStore(LiveSnapshotStore):
    def __init__(self):
        self._state: Optional[PetState] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[PetState]:
        with self._lock:
            return self._state.model_copy() if self._state else None

    def put(self, state: PetState) -> None:
        with self._lock:
            self._state = state.model_copy()

    def clear(self) -> None:
        with self._lock:
            self._state = None


class SQLiteLiveSnapshotStore(LiveSnapshotStore):
    """Durable single-row snapshot table."""

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()
        with self._guard("open"):
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._init_schema()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise StorageError(
                f"Live snapshot store {operation} failed ({self.db_path}): {exc}"
            ) from exc

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS live_snapshot (
                slot INTEGER PRIMARY KEY CHECK (slot = 0),
                payload TEXT NOT NULL,
                saved_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def get(self) -> Optional[PetState]:
        with self._guard("get"), self._lock:
            row = self._conn.execute(
                "SELECT payload FROM live_snapshot WHERE slot = 0"
            ).fetchone()
        if row is None or not row[0]:
            return None

        try:
            return PetState.model_validate_json(row[0])
        except ValidationError as exc:
            logger.warning("Stored live snapshot is unreadable, ignoring it: %s", exc)
            return None

    def put(self, state: PetState) -> None:
        payload = state.model_dump_json(by_alias=True)
        saved_at = datetime.now(timezone.utc).isoformat()
        with self._guard("put"), self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO live_snapshot (slot, payload, saved_at) "
                "VALUES (0, ?, ?)",
                (payload, saved_at),
            )

    def clear(self) -> None:
        with self._guard("clear"), self._lock, self._conn:
            self._conn.execute("DELETE FROM live_snapshot")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
