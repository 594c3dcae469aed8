"""Tests for the Baseline Store and Live Snapshot Store implementations."""

from datetime import datetime, timedelta, timezone

import pytest

from pet_kernel.baseline.store import (
    KEY_BASE_ENERGY,
    KEY_BASE_SATIETY,
    KEY_BASE_TIMESTAMP,
    KEY_LAST_CALCULATION_TIME,
    InMemoryBaselineStore,
    SQLiteBaselineStore,
    StorageError,
    decode_baseline,
    encode_baseline,
)
from pet_kernel.live.store import InMemoryLiveSnapshotStore, SQLiteLiveSnapshotStore
from pet_kernel.models.pet import BaselineSnapshot, PetState

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _make_state(**overrides) -> PetState:
    fields = dict(
        pet_id="pet_1",
        pet_name="Mochi",
        prefab_name="Pet_CatGrey",
        energy=90,
        satiety=60,
        is_bored=True,
        age_in_days=4,
        last_update_time=NOW,
    )
    fields.update(overrides)
    return PetState(**fields)


@pytest.fixture(params=["memory", "sqlite"])
def baseline_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryBaselineStore()
    else:
        store = SQLiteBaselineStore(db_path=str(tmp_path / "pet.db"))
        yield store
        store.close()


@pytest.fixture(params=["memory", "sqlite"])
def live_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryLiveSnapshotStore()
    else:
        store = SQLiteLiveSnapshotStore(db_path=str(tmp_path / "pet.db"))
        yield store
        store.close()


class TestBaselineStore:
    def test_empty_store_loads_none(self, baseline_store):
        assert baseline_store.load() is None
        assert baseline_store.last_recomputation_instant() is None

    def test_save_and_load(self, baseline_store):
        saved = baseline_store.save(_make_state(), NOW)
        loaded = baseline_store.load()

        assert loaded == saved
        assert loaded.pet_id == "pet_1"
        assert loaded.pet_name == "Mochi"
        assert loaded.prefab_name == "Pet_CatGrey"
        assert loaded.base_energy == 90
        assert loaded.base_satiety == 60
        assert loaded.base_is_bored is True
        assert loaded.base_timestamp == NOW
        assert loaded.last_calculation_time == NOW

    def test_save_overwrites(self, baseline_store):
        baseline_store.save(_make_state(energy=10), NOW)
        later = NOW + timedelta(minutes=5)
        baseline_store.save(_make_state(energy=20, pet_id="pet_2"), later)

        loaded = baseline_store.load()
        assert loaded.pet_id == "pet_2"
        assert loaded.base_energy == 20
        assert loaded.base_timestamp == later

    def test_update_recomputation_leaves_values(self, baseline_store):
        baseline_store.save(_make_state(), NOW)
        later = NOW + timedelta(hours=1)
        baseline_store.update_recomputation_instant(later)

        loaded = baseline_store.load()
        assert loaded.base_timestamp == NOW
        assert loaded.base_energy == 90
        assert loaded.last_calculation_time == later
        assert baseline_store.last_recomputation_instant() == later

    def test_recomputation_without_baseline_stays_absent(self, baseline_store):
        baseline_store.update_recomputation_instant(NOW)
        assert baseline_store.load() is None
        assert baseline_store.last_recomputation_instant() == NOW

    def test_clear(self, baseline_store):
        baseline_store.save(_make_state(), NOW)
        baseline_store.clear()
        assert baseline_store.load() is None

    def test_millisecond_precision(self, baseline_store):
        at = NOW + timedelta(milliseconds=123)
        baseline_store.save(_make_state(), at)
        assert baseline_store.load().base_timestamp == at


class TestBaselineEncoding:
    def _encoded(self):
        baseline = BaselineSnapshot.from_state(_make_state(), NOW)
        return encode_baseline(baseline)

    @pytest.mark.parametrize("missing", [KEY_BASE_TIMESTAMP, KEY_BASE_ENERGY, KEY_BASE_SATIETY])
    def test_partial_record_is_absent(self, missing):
        values = self._encoded()
        del values[missing]
        assert decode_baseline(values) is None

    def test_missing_optional_keys_use_defaults(self):
        values = {
            KEY_BASE_TIMESTAMP: "1767268800000",
            KEY_BASE_ENERGY: "50",
            KEY_BASE_SATIETY: "40",
        }
        baseline = decode_baseline(values)
        assert baseline.pet_name == "我的宠物"
        assert baseline.prefab_name == "Pet_CatBrown"
        assert baseline.base_is_bored is False
        assert baseline.last_calculation_time == NOW

    def test_corrupt_value_is_absent(self):
        values = self._encoded()
        values[KEY_BASE_ENERGY] = "lots"
        assert decode_baseline(values) is None

    def test_recomputation_key_encoded(self):
        assert self._encoded()[KEY_LAST_CALCULATION_TIME] == "1767268800000"


class TestSQLiteBaselineStore:
    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "pet.db")
        store = SQLiteBaselineStore(db_path=path)
        store.save(_make_state(), NOW)
        store.close()

        reopened = SQLiteBaselineStore(db_path=path)
        assert reopened.load().base_energy == 90
        reopened.close()

    def test_closed_connection_raises_storage_error(self):
        store = SQLiteBaselineStore()
        store.close()
        with pytest.raises(StorageError):
            store.load()
        with pytest.raises(StorageError):
            store.save(_make_state(), NOW)

    def test_unreachable_path_raises_storage_error(self, tmp_path):
        with pytest.raises(StorageError):
            SQLiteBaselineStore(db_path=str(tmp_path / "missing" / "pet.db"))


class TestLiveSnapshotStore:
    def test_empty_store(self, live_store):
        assert live_store.get() is None

    def test_put_and_get(self, live_store):
        state = _make_state()
        live_store.put(state)
        assert live_store.get() == state

    def test_read_your_last_write(self, live_store):
        live_store.put(_make_state(energy=1))
        live_store.put(_make_state(energy=2))
        assert live_store.get().energy == 2

    def test_clear(self, live_store):
        live_store.put(_make_state())
        live_store.clear()
        assert live_store.get() is None


class TestSQLiteLiveSnapshotStore:
    def test_stored_as_camel_case_json(self, tmp_path):
        store = SQLiteLiveSnapshotStore(db_path=str(tmp_path / "pet.db"))
        store.put(_make_state())
        payload = store._conn.execute("SELECT payload FROM live_snapshot").fetchone()[0]
        assert '"petId":"pet_1"' in payload
        store.close()

    def test_corrupt_payload_reads_as_none(self):
        store = SQLiteLiveSnapshotStore()
        store._conn.execute(
            "INSERT INTO live_snapshot (slot, payload, saved_at) VALUES (0, ?, ?)",
            ('{"petId": "pet_1", "energy": ', NOW.isoformat()),
        )
        store._conn.commit()
        assert store.get() is None
        store.close()

    def test_legacy_payload_with_wall_clock_time(self):
        store = SQLiteLiveSnapshotStore()
        store._conn.execute(
            "INSERT INTO live_snapshot (slot, payload, saved_at) VALUES (0, ?, ?)",
            (
                '{"petId":"pet_1","petName":"Mochi","prefabName":"Pet_CatBlack",'
                '"energy":12,"satiety":34,"isBored":false,"purchaseDate":"",'
                '"ageInDays":2,"introduction":"hi","lastUpdateTime":"1767268800000"}',
                NOW.isoformat(),
            ),
        )
        store._conn.commit()
        state = store.get()
        assert state.energy == 12
        assert state.last_update_time == NOW
        store.close()

    def test_closed_connection_raises_storage_error(self):
        store = SQLiteLiveSnapshotStore()
        store.close()
        with pytest.raises(StorageError):
            store.get()
        with pytest.raises(StorageError):
            store.put(_make_state())
