from __future__ import annotations

import pytest

from geo.projection import GeoPoint
from streaming.manager import TileManager, UpdateStats
from telemetry.singleton import get_store, reset_store


@pytest.fixture
def store(tmp_path, monkeypatch):
    db_path = tmp_path / "telemetry.duckdb"
    monkeypatch.setenv("TILESTREAM_TELEMETRY_PATH", str(db_path))
    monkeypatch.setenv("TILESTREAM_TELEMETRY", "1")
    s = get_store()
    assert s is not None
    yield s
    reset_store()


def _stats(total_ms: float, *, loaded: int = 3) -> UpdateStats:
    return UpdateStats(
        observer=GeoPoint(50.08, 14.43),
        loaded=loaded,
        unloaded=1,
        resident=9,
        generate_ms=total_ms / 2,
        total_ms=total_ms,
    )


def test_get_store_is_none_when_disabled(monkeypatch):
    monkeypatch.setenv("TILESTREAM_TELEMETRY", "0")
    assert get_store() is None


def test_telemetry_store_writes_rows(store):
    store.record(_stats(4.0), source="api")
    store.flush(timeout_s=2.0)

    # Use the existing connection; DuckDB disallows opening the same file with different configs.
    n = int(store.conn.execute("select count(*) from updates").fetchone()[0])
    assert n == 1

    row = store.conn.execute("select source, loaded, resident from updates limit 1").fetchone()
    assert row == ("api", 3, 9)


def test_summary_and_slowest(store):
    for ms in (1.0, 2.0, 9.0):
        store.record(_stats(ms), source="api")
    store.record(_stats(5.0), source="cli")
    store.flush(timeout_s=2.0)

    rows = store.summary()
    assert [r["source"] for r in rows] == ["api", "cli"]
    api = rows[0]
    assert api["n"] == 3
    assert api["avgTotalMs"] == pytest.approx(4.0)
    assert api["maxResident"] == 9

    assert [r["source"] for r in store.summary(source="cli")] == ["cli"]

    slow = store.slowest(limit=2)
    assert [r["totalMs"] for r in slow] == [9.0, 5.0]
    assert slow[0]["lat"] == pytest.approx(50.08)


def test_manager_recorder_writes_processed_updates(store, small_config):
    manager = TileManager(small_config, recorder=store.recorder("test"))
    manager.update_position(GeoPoint(0.0, 0.0))
    manager.update_position(GeoPoint(0.0, 0.0))  # debounced
    store.flush(timeout_s=2.0)

    n = int(store.conn.execute("select count(*) from updates where source = 'test'").fetchone()[0])
    assert n == 1


def test_telemetry_reset_deletes_db(store):
    store.record(_stats(1.0))
    store.flush(timeout_s=2.0)
    assert store.path.exists()

    reset_store()
    assert not store.path.exists()


def test_record_after_reset_is_dropped(store):
    store.reset()
    store.record(_stats(1.0))
    # No writer thread on the closed connection, nothing left pending.
    assert store._worker is None
    assert store._q.unfinished_tasks == 0
