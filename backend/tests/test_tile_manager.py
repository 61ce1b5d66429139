from __future__ import annotations

import logging
import math

import pytest

from geo.projection import GeoPoint, distance_meters
from streaming.config import StreamingConfig
from streaming.manager import TileManager, UpdateStats


def _collect(manager: TileManager) -> list:
    events: list = []
    manager.subscribe(events.append)
    return events


def _assert_unique_keys(manager: TileManager) -> None:
    keys = [t.key for t in manager.resident_tiles()]
    assert len(keys) == len(set(keys))


def test_initial_update_at_origin_loads_a_circular_footprint():
    manager = TileManager()
    events = _collect(manager)

    manager.update_position(GeoPoint(0.0, 0.0))

    resident = manager.resident_tiles()
    assert 9 <= len(resident) <= 13
    assert [e.type for e in events] == ["load"]
    assert {t.key for t in events[0].tiles} == {t.key for t in resident}
    for t in resident:
        assert distance_meters(GeoPoint(0.0, 0.0), t.bounds.center) <= 2000.0


def test_moving_east_loads_new_tiles_and_unloads_western_ones():
    manager = TileManager()
    manager.update_position(GeoPoint(0.0, 0.0))
    before = {t.key for t in manager.resident_tiles()}
    events = _collect(manager)

    observer = GeoPoint(0.0, 0.02)
    manager.update_position(observer)

    assert [e.type for e in events] == ["load", "unload"]
    loaded, unloaded = events
    assert loaded.tiles and unloaded.tiles
    assert all(t.key not in before for t in loaded.tiles)
    assert all(t.key in before for t in unloaded.tiles)
    # The tiles that went away are west of the start point.
    assert all(t.key.grid_longitude < 0.02 for t in unloaded.tiles)
    for t in unloaded.tiles:
        assert distance_meters(observer, t.bounds.center) > 2500.0
        assert manager.get_tile(t.key) is None

    diagonal = 1000.0 * math.sqrt(2.0)
    for t in manager.resident_tiles():
        assert distance_meters(observer, t.bounds.center) <= 2000.0 + diagonal
    _assert_unique_keys(manager)


def test_same_position_twice_is_debounced():
    manager = TileManager()
    manager.update_position(GeoPoint(10.0, 10.0))
    events = _collect(manager)

    manager.update_position(GeoPoint(10.0, 10.0))
    # ~55m north: still under the 100m threshold.
    manager.update_position(GeoPoint(10.0005, 10.0))

    assert events == []
    assert manager.last_position == GeoPoint(10.0, 10.0)


def test_debounce_baseline_moves_only_on_processed_updates():
    manager = TileManager(StreamingConfig(movement_threshold_m=100.0))
    manager.update_position(GeoPoint(0.0, 0.0))
    # Creep east in ~55m steps; every other step crosses the threshold.
    step = 0.0005
    processed = 0
    for i in range(1, 9):
        before = manager.last_position
        manager.update_position(GeoPoint(0.0, i * step))
        if manager.last_position is not before:
            processed += 1
    assert processed == 4


def test_random_walk_keeps_cache_consistent(small_config):
    manager = TileManager(small_config)
    evicted = []

    def on_event(ev):
        if ev.type == "unload":
            evicted.extend(ev.tiles)

    manager.subscribe(on_event)
    lat, lon = 45.0, 7.0
    for i in range(40):
        lat += 0.0007 * math.sin(i * 0.7)
        lon += 0.0011 * math.cos(i * 0.3)
        observer = GeoPoint(lat, lon)
        n_evicted = len(evicted)
        manager.update_position(observer)
        _assert_unique_keys(manager)
        # Debounced steps keep the previous baseline.
        ref = manager.last_position
        for t in evicted[n_evicted:]:
            assert distance_meters(ref, t.bounds.center) > small_config.unload_distance_m
        for t in manager.resident_tiles():
            assert distance_meters(ref, t.bounds.center) <= small_config.unload_distance_m


def test_resident_tiles_cover_their_grid_cell(small_config):
    manager = TileManager(small_config)
    manager.update_position(GeoPoint(-12.0, 130.0))
    for t in manager.resident_tiles():
        cell = manager.grid.bounds_for(t.key)
        assert t.bounds.contains_bounds(cell)


def test_listener_error_does_not_block_others_or_corrupt_state(small_config, caplog):
    manager = TileManager(small_config)
    seen = []

    def broken(ev):
        raise ValueError("nope")

    manager.subscribe(broken)
    manager.subscribe(seen.append)

    with caplog.at_level(logging.ERROR):
        manager.update_position(GeoPoint(0.0, 0.0))

    assert [e.type for e in seen] == ["load"]
    assert len(manager.resident_tiles()) == len(seen[0].tiles)
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_unsubscribe_stops_notifications(small_config):
    manager = TileManager(small_config)
    events = []
    unsubscribe = manager.subscribe(events.append)
    manager.update_position(GeoPoint(0.0, 0.0))
    unsubscribe()
    manager.update_position(GeoPoint(0.0, 0.01))
    assert [e.type for e in events] == ["load"]


def test_listener_sees_committed_cache(small_config):
    manager = TileManager(small_config)
    checks = []

    def on_event(ev):
        for t in ev.tiles:
            present = manager.get_tile(t.key) is not None
            checks.append(present if ev.type == "load" else not present)

    manager.subscribe(on_event)
    manager.update_position(GeoPoint(0.0, 0.0))
    manager.update_position(GeoPoint(0.0, 0.01))
    assert checks and all(checks)


def test_get_tile_by_key_and_id(small_config):
    manager = TileManager(small_config)
    manager.update_position(GeoPoint(51.5, -0.12))
    tile = manager.resident_tiles()[0]
    assert manager.get_tile(tile.key) is tile
    assert manager.get_tile(tile.id) is tile
    assert manager.get_tile("tile_1.0000000_1.0000000") is None
    assert manager.get_tile("garbage") is None


def test_tile_at_finds_the_observer_tile(small_config):
    manager = TileManager(small_config)
    observer = GeoPoint(51.5, -0.12)
    manager.update_position(observer)
    tile = manager.tile_at(observer)
    assert tile is not None
    assert tile.bounds.contains(observer.latitude, observer.longitude)
    assert manager.tile_at(GeoPoint(0.0, 0.0)) is None


def test_reloaded_tile_is_a_fresh_incarnation_with_same_content(small_config):
    manager = TileManager(small_config)
    home = GeoPoint(0.0, 0.0)
    manager.update_position(home)
    first = manager.tile_at(home)

    manager.update_position(GeoPoint(0.0, 0.05))  # ~5.5km away: everything evicted
    assert manager.tile_at(home) is None

    manager.update_position(home)
    second = manager.tile_at(home)
    assert second is not None and second is not first
    assert second == first
    assert second.elevation.data == first.elevation.data


def test_dispose_releases_tiles_and_listeners(small_config):
    manager = TileManager(small_config)
    events = _collect(manager)
    manager.update_position(GeoPoint(0.0, 0.0))
    n_events = len(events)

    manager.dispose()

    assert manager.resident_tiles() == []
    assert len(manager) == 0
    assert manager.disposed
    with pytest.raises(RuntimeError):
        manager.update_position(GeoPoint(0.0, 0.1))
    with pytest.raises(RuntimeError):
        manager.subscribe(events.append)
    assert len(events) == n_events


def test_invalid_observer_fails_fast_without_touching_state(small_config):
    manager = TileManager(small_config)
    manager.update_position(GeoPoint(0.0, 0.0))
    before = [t.key for t in manager.resident_tiles()]
    with pytest.raises(ValueError):
        manager.update_position(GeoPoint(123.0, 0.0))
    assert [t.key for t in manager.resident_tiles()] == before
    assert manager.last_position == GeoPoint(0.0, 0.0)


def test_recorder_receives_update_stats(small_config):
    stats: list[UpdateStats] = []
    manager = TileManager(small_config, recorder=stats.append)
    manager.update_position(GeoPoint(0.0, 0.0))
    manager.update_position(GeoPoint(0.0, 0.0))  # debounced, not recorded
    assert len(stats) == 1
    assert stats[0].loaded == stats[0].resident == len(manager)
    assert stats[0].unloaded == 0
    assert stats[0].total_ms >= stats[0].generate_ms >= 0.0


def test_failing_recorder_is_tolerated(small_config):
    def broken(_stats):
        raise OSError("disk full")

    manager = TileManager(small_config, recorder=broken)
    manager.update_position(GeoPoint(0.0, 0.0))
    assert len(manager) > 0


def test_managers_are_independent(small_config):
    a = TileManager(small_config)
    b = TileManager(small_config)
    a.update_position(GeoPoint(0.0, 0.0))
    assert len(a) > 0
    assert len(b) == 0


def test_high_latitude_update_filters_by_projected_distance():
    manager = TileManager()
    observer = GeoPoint(78.22, 15.65)
    manager.update_position(observer)
    for t in manager.resident_tiles():
        assert distance_meters(observer, t.bounds.center) <= 2000.0
    _assert_unique_keys(manager)
    assert manager.last_position == observer
