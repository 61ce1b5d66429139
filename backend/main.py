import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from api.flight_stream import stream_flight
from api.payload import tile_payload, tile_summary
from api.session import get_manager, manager_lock, reset_manager
from geo.projection import GeoPoint
from telemetry.singleton import get_store, reset_store
from tiles.types import TileEvent

logging.basicConfig(
    level=(os.getenv("TILESTREAM_LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiGeoPoint(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)

    def to_geo(self) -> GeoPoint:
        return GeoPoint(latitude=self.lat, longitude=self.lon)


class ApiFlight(BaseModel):
    waypoints: list[ApiGeoPoint] = Field(min_length=1)
    stepDelayS: float = Field(default=0.0, ge=0.0, le=5.0)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/observer")
def update_observer(body: ApiGeoPoint):
    """
    Move the observer; report which tiles the update loaded/unloaded.
    """
    seen: list[TileEvent] = []
    observer = body.to_geo()
    with manager_lock():
        manager = get_manager()
        unsubscribe = manager.subscribe(seen.append)
        try:
            manager.update_position(observer)
        finally:
            unsubscribe()
        resident = len(manager)
        # Debounced updates leave the previous baseline in place.
        processed = manager.last_position is observer

    loaded = [t.id for ev in seen if ev.type == "load" for t in ev.tiles]
    unloaded = [t.id for ev in seen if ev.type == "unload" for t in ev.tiles]
    return {
        "processed": processed,
        "loaded": loaded,
        "unloaded": unloaded,
        "resident": resident,
    }


@app.get("/tiles")
def list_tiles():
    with manager_lock():
        tiles = get_manager().resident_tiles()
    return [tile_summary(t) for t in sorted(tiles, key=lambda t: t.key)]


@app.get("/tiles/{tile_id}")
def get_tile(tile_id: str):
    with manager_lock():
        tile = get_manager().get_tile(tile_id)
    if tile is None:
        raise HTTPException(status_code=404, detail=f"Tile not resident: {tile_id}")
    return tile_payload(tile)


@app.post("/flight")
def fly(body: ApiFlight):
    return StreamingResponse(
        stream_flight(
            get_manager,
            [wp.to_geo() for wp in body.waypoints],
            step_delay_s=body.stepDelayS,
        ),
        media_type="text/event-stream",
    )


@app.post("/reset")
def reset():
    reset_manager()
    return {"ok": True}


@app.get("/telemetry/summary")
def telemetry_summary(source: str | None = None, sinceMs: int | None = None):
    store = get_store()
    if store is None:
        return {"enabled": False, "rows": []}
    store.flush(timeout_s=2.0)
    return {"enabled": True, "rows": store.summary(source=source, since_ms=sinceMs)}


@app.get("/telemetry/slowest")
def telemetry_slowest(source: str | None = None, limit: int = 25):
    store = get_store()
    if store is None:
        return {"enabled": False, "rows": []}
    store.flush(timeout_s=2.0)
    return {"enabled": True, "rows": store.slowest(source=source, limit=limit)}


@app.post("/telemetry/reset")
def telemetry_reset():
    # The manager records into the store; close both together so no update
    # lands on a closed connection. The manager is rebuilt lazily.
    with manager_lock():
        reset_store()
        reset_manager()
    return {"ok": True}
