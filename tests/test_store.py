from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from conftest import T0, rr
from double_analyzer.collector.parsing import RawRound
from double_analyzer.core.colors import Color
from double_analyzer.db import crud
from double_analyzer.db.store import OutcomeStore
from double_analyzer.errors import StoreWriteError


def test_insert_orders_ids_like_batch(store):
    assert store.insert_batch([rr(1, 0), rr(9, 30), rr(0, 60)]) == 3
    rows = store.latest(10)
    assert [r.number for r in rows] == [0, 9, 1]
    assert rows[0].id > rows[1].id > rows[2].id


def test_reinsert_same_batch_is_noop(store):
    batch = [rr(3, 0), rr(12, 30), rr(5, 60)]
    store.insert_batch(batch)
    first = store.count()
    assert store.insert_batch(batch) == 0
    assert store.count() == first


def test_overlapping_reads_insert_only_new_rounds(store):
    store.insert_batch([rr(3, 0), rr(12, 30)])
    assert store.insert_batch([rr(3, 0), rr(12, 30), rr(7, 60)]) == 1
    assert [r.number for r in store.latest(5)] == [7, 12, 3]


def test_dedup_tolerates_small_clock_skew(store):
    store.insert_batch([rr(4, 0)])
    assert store.insert_batch([rr(4, 1)]) == 0
    # same number half a minute later is a different round
    assert store.insert_batch([rr(4, 30)]) == 1


def test_duplicate_inside_one_batch(store):
    assert store.insert_batch([rr(8, 0), rr(8, 0)]) == 1


def test_external_id_is_dedup_key(store):
    store.insert_batch([rr(2, 0, external_id="abc")])
    assert store.insert_batch([rr(2, 90, external_id="abc")]) == 0


def test_retention_trims_exactly_the_oldest(store):
    store.insert_batch([rr(n % 14 + 1, 30 * n) for n in range(10)])
    oldest_kept = store.latest(10)[-1].id
    store.insert_batch([rr(n % 14 + 1, 30 * n) for n in range(10, 15)])
    assert store.count() == 10
    rows = store.latest(store.count())
    ids = [r.id for r in rows]
    assert ids == sorted(ids, reverse=True)
    assert min(ids) == oldest_kept + 5


def test_retention_within_single_batch(engine):
    s = OutcomeStore(engine, retention=3)
    assert s.insert_batch([rr(n + 1, 30 * n) for n in range(5)]) == 5
    assert s.count() == 3
    assert [r.number for r in s.latest(10)] == [5, 4, 3]


def test_latest_returns_fewer_when_store_small(store):
    store.insert_batch([rr(1, 0), rr(2, 30)])
    assert len(store.latest(50)) == 2
    assert store.latest(0) == []


def test_purge_and_ids_not_reused(store):
    store.insert_batch([rr(1, 0), rr(2, 30), rr(3, 60)])
    assert store.purge() == 3
    assert store.count() == 0
    store.insert_batch([rr(4, 90)])
    assert store.latest(1)[0].id == 4


def test_failed_batch_rolls_back(store, monkeypatch):
    store.insert_batch([rr(1, 0)])

    def boom(session, ceiling):
        raise OperationalError("DELETE", {}, Exception("connection lost"))

    monkeypatch.setattr(crud, "trim_to", boom)
    with pytest.raises(StoreWriteError):
        store.insert_batch([rr(2, 30), rr(3, 60)])
    assert store.count() == 1


def test_status_lists_newest(store):
    store.insert_batch([rr(n + 1, 30 * n) for n in range(7)])
    st = store.status()
    assert st["total"] == 7
    assert [o["number"] for o in st["latest"]] == [7, 6, 5, 4, 3]


def test_observed_at_round_trips_as_utc(store):
    store.insert_batch([rr(6, 15)])
    row = store.latest(1)[0]
    assert row.observed_at == T0 + timedelta(seconds=15)
    assert row.observed_at.utcoffset() == timedelta(0)
    assert row.to_dict()["observed_at"] == "2026-01-27T19:00:15+00:00"


def test_offset_timestamps_dedup_against_utc(store):
    store.insert_batch([rr(6, 15)])
    brt = timezone(timedelta(hours=-3))
    same_round = RawRound(
        color=Color.RED, number=6, observed_at=datetime(2026, 1, 27, 16, 0, 16, tzinfo=brt)
    )
    assert store.insert_batch([same_round]) == 0


def test_naive_timestamp_is_refused(store):
    naive = RawRound(color=Color.RED, number=6, observed_at=datetime(2026, 1, 27, 19, 0, 15))
    with pytest.raises(StoreWriteError):
        store.insert_batch([naive])
    assert store.count() == 0
