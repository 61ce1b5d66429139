from __future__ import annotations

import json
from asyncio import sleep
from enum import Enum
from typing import AsyncIterator, Callable, Iterable

from api.payload import event_payload
from api.session import manager_lock
from geo.projection import GeoPoint
from streaming.manager import TileManager
from tiles.types import TileEvent


class EventType(str, Enum):
    load = "load"
    unload = "unload"
    position = "position"
    done = "done"


def format_event(type: EventType, data: str):
    return f"event: {type.value}\ndata: {data}\n\n"


async def stream_flight(
    get_manager: Callable[[], TileManager],
    waypoints: Iterable[GeoPoint],
    *,
    step_delay_s: float = 0.0,
) -> AsyncIterator[str]:
    """
    Replay a flight path through the current manager as server-sent events.

    `get_manager` is called per waypoint under the manager lock, so a reset
    between waypoints carries on with the fresh manager.

    Per waypoint: one `position` event, then whatever `load`/`unload` events the
    manager published for it (same order). A final `done` event carries totals.
    """
    steps = 0
    n_loaded = 0
    n_unloaded = 0
    for wp in waypoints:
        seen: list[TileEvent] = []
        with manager_lock():
            manager = get_manager()
            unsubscribe = manager.subscribe(seen.append)
            try:
                manager.update_position(wp)
            finally:
                unsubscribe()
            resident = len(manager)

        steps += 1
        yield format_event(
            EventType.position,
            json.dumps({"lat": wp.latitude, "lon": wp.longitude, "resident": resident}),
        )
        for ev in seen:
            if ev.type == "load":
                n_loaded += len(ev.tiles)
            else:
                n_unloaded += len(ev.tiles)
            yield format_event(EventType(ev.type), json.dumps(event_payload(ev)))
        await sleep(step_delay_s)

    yield format_event(
        EventType.done,
        json.dumps({"steps": steps, "loaded": n_loaded, "unloaded": n_unloaded}),
    )
