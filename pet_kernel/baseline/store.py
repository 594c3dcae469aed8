"""
Baseline Store: durable single-slot storage for the offline decay anchor.

Behavioral Contract:
- Holds at most one baseline per installation (not per pet)
- save() writes every field in one transaction; readers never see half a record
- load() returns None unless capture instant, base energy and base satiety are
  all present; partial records count as absent
- update_recomputation_instant() touches only the last-recomputation key
- Transport-level failures raise StorageError; bad values are a data-quality
  problem and load as None
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, Optional

from pet_kernel.models.pet import (
    DEFAULT_PET_NAME,
    DEFAULT_PREFAB_NAME,
    BaselineSnapshot,
    PetState,
)
from pet_kernel.models.timestamps import from_epoch_millis, to_epoch_millis

logger = logging.getLogger(__name__)

KEY_PET_ID = "offline_pet_id"
KEY_PET_NAME = "offline_pet_name"
KEY_PREFAB_NAME = "offline_prefab_name"
KEY_BASE_ENERGY = "offline_base_energy"
KEY_BASE_SATIETY = "offline_base_satiety"
KEY_BASE_IS_BORED = "offline_base_is_bored"
KEY_BASE_TIMESTAMP = "offline_base_timestamp"
KEY_LAST_CALCULATION_TIME = "offline_last_calculation_time"

REQUIRED_KEYS = (KEY_BASE_TIMESTAMP, KEY_BASE_ENERGY, KEY_BASE_SATIETY)


class StorageError(Exception):
    """Raised when a durable store cannot be reached or written."""
    pass


def encode_baseline(baseline: BaselineSnapshot) -> Dict[str, str]:
    """Flatten a baseline into the persisted key-value layout."""
    return {
        KEY_PET_ID: baseline.pet_id,
        KEY_PET_NAME: baseline.pet_name,
        KEY_PREFAB_NAME: baseline.prefab_name,
        KEY_BASE_ENERGY: str(baseline.base_energy),
        KEY_BASE_SATIETY: str(baseline.base_satiety),
        KEY_BASE_IS_BORED: "true" if baseline.base_is_bored else "false",
        KEY_BASE_TIMESTAMP: str(to_epoch_millis(baseline.base_timestamp)),
        KEY_LAST_CALCULATION_TIME: str(to_epoch_millis(baseline.last_calculation_time)),
    }


def decode_baseline(values: Dict[str, str]) -> Optional[BaselineSnapshot]:
    """Rebuild a baseline from stored keys, or None if absent or unreadable."""
    if not all(key in values for key in REQUIRED_KEYS):
        return None

    try:
        base_timestamp = from_epoch_millis(int(values[KEY_BASE_TIMESTAMP]))
        last_calculation = values.get(KEY_LAST_CALCULATION_TIME)
        return BaselineSnapshot(
            pet_id=values.get(KEY_PET_ID, ""),
            pet_name=values.get(KEY_PET_NAME, DEFAULT_PET_NAME),
            prefab_name=values.get(KEY_PREFAB_NAME, DEFAULT_PREFAB_NAME),
            base_energy=int(values[KEY_BASE_ENERGY]),
            base_satiety=int(values[KEY_BASE_SATIETY]),
            base_is_bored=values.get(KEY_BASE_IS_BORED) == "true",
            base_timestamp=base_timestamp,
            last_calculation_time=(
                from_epoch_millis(int(last_calculation))
                if last_calculation is not None
                else base_timestamp
            ),
        )
    except (ValueError, OverflowError, OSError) as exc:
        logger.warning("Stored baseline is unreadable, ignoring it: %s", exc)
        return None


class BaselineStore(ABC):
    """Single-slot storage for the baseline snapshot."""

    @abstractmethod
    def save(self, state: PetState, at: datetime) -> BaselineSnapshot:
        """Overwrite the baseline with `state`, captured and recomputed at `at`."""
        pass

    @abstractmethod
    def load(self) -> Optional[BaselineSnapshot]:
        """Return the stored baseline, or None if there is no complete record."""
        pass

    @abstractmethod
    def update_recomputation_instant(self, at: datetime) -> None:
        """Record that offline stats were recomputed at `at`."""
        pass

    @abstractmethod
    def last_recomputation_instant(self) -> Optional[datetime]:
        """Return when offline stats were last recomputed, or None if never."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored baseline entirely."""
        pass


class InMemoryBaselineStore(BaselineStore):
    """Dict-backed store; contents are lost with the process."""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, state: PetState, at: datetime) -> BaselineSnapshot:
        baseline = BaselineSnapshot.from_state(state, at)
        encoded = encode_baseline(baseline)
        with self._lock:
            self._values = encoded
        return baseline

    def load(self) -> Optional[BaselineSnapshot]:
        with self._lock:
            values = dict(self._values)
        return decode_baseline(values)

    def update_recomputation_instant(self, at: datetime) -> None:
        with self._lock:
            self._values[KEY_LAST_CALCULATION_TIME] = str(to_epoch_millis(at))

    def last_recomputation_instant(self) -> Optional[datetime]:
        with self._lock:
            raw = self._values.get(KEY_LAST_CALCULATION_TIME)
        return from_epoch_millis(int(raw)) if raw is not None else None

    def clear(self) -> None:
        with self._lock:
            self._values = {}


class SQLiteBaselineStore(BaselineStore):
    """
    Durable baseline store.
    One key-value table; every write is a single transaction.
    """

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
                f"Baseline store {operation} failed ({self.db_path}): {exc}"
            ) from exc

    def _init_schema(self) -> None:
        """Create the baseline table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS baseline (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def save(self, state: PetState, at: datetime) -> BaselineSnapshot:
        baseline = BaselineSnapshot.from_state(state, at)
        rows = list(encode_baseline(baseline).items())
        with self._guard("save"), self._lock, self._conn:
            self._conn.execute("DELETE FROM baseline")
            self._conn.executemany(
                "INSERT INTO baseline (key, value) VALUES (?, ?)", rows
            )
        return baseline

    def load(self) -> Optional[BaselineSnapshot]:
        with self._guard("load"), self._lock:
            rows = self._conn.execute("SELECT key, value FROM baseline").fetchall()
        return decode_baseline({key: value for key, value in rows})

    def update_recomputation_instant(self, at: datetime) -> None:
        with self._guard("update"), self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO baseline (key, value) VALUES (?, ?)",
                (KEY_LAST_CALCULATION_TIME, str(to_epoch_millis(at))),
            )

    def last_recomputation_instant(self) -> Optional[datetime]:
        with self._guard("load"), self._lock:
            row = self._conn.execute(
                "SELECT value FROM baseline WHERE key = ?",
                (KEY_LAST_CALCULATION_TIME,),
            ).fetchone()
        return from_epoch_millis(int(row[0])) if row else None

    def clear(self) -> None:
        with self._guard("clear"), self._lock, self._conn:
            self._conn.execute("DELETE FROM baseline")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
