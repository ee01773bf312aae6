"""
Tests for bounded anchor history persistence
"""

import json
from datetime import datetime, timedelta

import pytest

from geospatial_anchor_service.core.anchor_history import (
    AnchorRecord,
    HistoryCollection,
    serialize_history
)
from geospatial_anchor_service.core.history_store import HistoryStore, is_expired
from geospatial_anchor_service.services.key_value_store import InMemoryKeyValueStore

from conftest import FakeClock

KEY = "PersistentGeospatialAnchors"


def make_record(created_at, latitude=37.0):
    return AnchorRecord(latitude=latitude, longitude=-122.0, altitude=10.0,
                        heading=90.0, created_at=created_at)


class FailingStore(InMemoryKeyValueStore):
    def set_string(self, key, value):
        raise OSError("disk full")


def test_load_without_stored_history_is_empty(history_store):
    assert len(history_store.load()) == 0


def test_single_anchor_round_trip(history_store, clock):
    record = make_record(clock.now())

    history_store.save(HistoryCollection([record]))
    loaded = history_store.load()

    assert list(loaded) == [record]


def test_save_keeps_newest_five_in_descending_order(history_store, clock):
    base = clock.now() - timedelta(hours=6)
    records = [make_record(base + timedelta(minutes=minute), latitude=float(minute))
               for minute in range(6)]

    saved = history_store.save(HistoryCollection(records))
    loaded = history_store.load()

    expected = [float(minute) for minute in (5, 4, 3, 2, 1)]
    assert [record.latitude for record in saved] == expected
    assert [record.latitude for record in loaded] == expected
    assert history_store.stats['capacity_evicted'] == 1


def test_save_smaller_collection_keeps_everything(history_store, clock):
    records = [make_record(clock.now() - timedelta(minutes=minute)) for minute in range(3)]

    assert len(history_store.save(HistoryCollection(records))) == 3


def test_yesterday_late_anchor_evicted_after_midnight(kv_store):
    yesterday = make_record(datetime(2024, 6, 14, 23, 59), latitude=1.0)
    today = make_record(datetime(2024, 6, 15, 0, 0, 30), latitude=2.0)
    kv_store.set_string(KEY, serialize_history(HistoryCollection([today, yesterday])))
    store = HistoryStore(kv_store, clock=FakeClock(datetime(2024, 6, 15, 0, 1)))

    loaded = store.load()

    assert [record.latitude for record in loaded] == [2.0]
    assert store.stats['expired_evicted'] == 1


def test_load_writes_evicted_history_back(kv_store):
    old = make_record(datetime(2024, 6, 10, 9, 0))
    kv_store.set_string(KEY, serialize_history(HistoryCollection([old])))
    store = HistoryStore(kv_store, clock=FakeClock(datetime(2024, 6, 15, 9, 0)))

    store.load()

    assert json.loads(kv_store.get_string(KEY)) == {"Collection": []}


@pytest.mark.parametrize("created_at, current, expected", [
    (datetime(2024, 6, 15, 0, 0), datetime(2024, 6, 15, 23, 59), False),
    (datetime(2024, 6, 14, 23, 59), datetime(2024, 6, 15, 0, 1), True),
    (datetime(2024, 6, 15, 12, 0), datetime(2024, 6, 15, 8, 0), False),
])
def test_expiry_compares_calendar_days(created_at, current, expected):
    assert is_expired(make_record(created_at), current) is expected


@pytest.mark.parametrize("blob", [
    "not json at all",
    '{"Collection": [{"Latitude": 500}]}',
    '{"Collection": "nope"}',
])
def test_corrupt_history_resets_to_empty(kv_store, history_store, blob):
    kv_store.set_string(KEY, blob)

    loaded = history_store.load()

    assert len(loaded) == 0
    assert history_store.stats['corrupt_resets'] == 1
    assert json.loads(kv_store.get_string(KEY)) == {"Collection": []}


def test_persisted_layout_uses_stored_field_names(kv_store, history_store, clock):
    history_store.save(HistoryCollection([make_record(clock.now())]))

    blob = json.loads(kv_store.get_string(KEY))

    assert list(blob) == ["Collection"]
    assert set(blob["Collection"][0]) == {"Latitude", "Longitude", "Altitude", "Heading", "CreatedTime"}


def test_clear_persists_empty_history(kv_store, history_store, clock):
    history_store.save(HistoryCollection([make_record(clock.now())]))

    history_store.clear()

    assert len(history_store.load()) == 0


def test_write_failure_is_counted_not_raised(clock):
    store = HistoryStore(FailingStore(), clock=clock)

    saved = store.save(HistoryCollection([make_record(clock.now())]))

    assert len(saved) == 1
    assert store.stats['save_failures'] == 1


def test_invalid_storage_limit_rejected(kv_store):
    with pytest.raises(ValueError):
        HistoryStore(kv_store, storage_limit=0)


def test_offset_timestamps_load_as_local_time(kv_store, history_store):
    kv_store.set_string(KEY, '{"Collection": [{"Latitude": 1.0, "Longitude": 2.0, "Altitude": 3.0, '
                             '"Heading": 10.0, "CreatedTime": "2024-06-15T12:00:00+00:00"}]}')

    loaded = history_store.load()

    assert [record.created_at.tzinfo for record in loaded] == [None]
