from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from streaming.manager import UpdateStats
from telemetry.sql import (
    CREATE_UPDATES_TABLE_SQL,
    INSERT_UPDATES_SQL,
    SLOWEST_SQL_TEMPLATE,
    SUMMARY_SQL_TEMPLATE,
)


def _safe_float(v) -> float | None:
    try:
        if v is None:
            return None
        return float(v)
    except Exception:
        return None


@dataclass
class TelemetryStore:
    """
    Per-update streaming stats in a DuckDB file.

    Writes go through a queue drained by a single writer thread, so recording
    never blocks `TileManager.update_position`.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _q: "queue.Queue[tuple]" = field(default_factory=queue.Queue, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker: threading.Thread | None = field(default=None, repr=False)
    _closed: bool = field(default=False, repr=False)

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_UPDATES_TABLE_SQL)

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, name="telemetry-writer", daemon=True
        )
        self._worker.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        """
        Stop the writer thread (best-effort) after it drains the queue.
        """
        self._stop.set()
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout=timeout_s)
        self._worker = None

    def record(self, stats: UpdateStats, *, source: str = "manager") -> None:
        # Best-effort, non-blocking: enqueue and return.
        if self._closed:
            return
        self.start()
        try:
            self._q.put_nowait(
                (
                    int(time.time() * 1000),
                    str(source),
                    float(stats.observer.latitude),
                    float(stats.observer.longitude),
                    int(stats.loaded),
                    int(stats.unloaded),
                    int(stats.resident),
                    float(stats.generate_ms),
                    float(stats.total_ms),
                )
            )
        except queue.Full:
            # drop telemetry on overload
            pass

    def recorder(self, source: str = "manager"):
        """Callable suitable for `TileManager(recorder=...)`."""

        def _record(stats: UpdateStats) -> None:
            self.record(stats, source=source)

        return _record

    def flush(self, *, timeout_s: float = 2.0) -> None:
        """
        Best-effort: wait until queued rows are written (used by tests).
        """
        if self._worker is None:
            return
        deadline = time.time() + timeout_s
        while time.time() < deadline:
            if self._q.unfinished_tasks == 0:
                return
            time.sleep(0.01)

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        """
        Run a read query inside the backend process.

        DuckDB uses file locks across processes; querying via the API avoids
        opening the file from a second process while the writer holds it.
        """
        with self._lock:
            if params:
                return self.conn.execute(sql, params).fetchall()
            return self.conn.execute(sql).fetchall()

    def summary(
        self,
        *,
        source: str | None = None,
        since_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        where = []
        params: list[Any] = []
        if source:
            where.append("source = ?")
            params.append(source)
        if since_ms is not None:
            where.append("ts_ms >= ?")
            params.append(int(since_ms))

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        rows = self.query(SUMMARY_SQL_TEMPLATE.format(where_sql=where_sql), params)

        out: list[dict[str, Any]] = []
        for (
            source_v,
            n,
            avg_ms,
            p50,
            p95,
            avg_gen_ms,
            avg_loaded,
            avg_unloaded,
            max_resident,
        ) in rows:
            out.append(
                {
                    "source": source_v,
                    "n": int(n),
                    "avgTotalMs": _safe_float(avg_ms),
                    "p50TotalMs": _safe_float(p50),
                    "p95TotalMs": _safe_float(p95),
                    "avgGenerateMs": _safe_float(avg_gen_ms),
                    "avgLoaded": _safe_float(avg_loaded),
                    "avgUnloaded": _safe_float(avg_unloaded),
                    "maxResident": int(max_resident) if max_resident is not None else None,
                }
            )
        return out

    def slowest(self, *, source: str | None = None, limit: int = 25) -> list[dict[str, Any]]:
        where_sql = ""
        params: list[Any] = []
        if source:
            where_sql = "WHERE source = ?"
            params.append(source)
        params.append(int(max(1, min(200, limit))))

        rows = self.query(SLOWEST_SQL_TEMPLATE.format(where_sql=where_sql), params)
        return [
            {
                "tsMs": int(ts_ms),
                "source": source_v,
                "lat": _safe_float(lat),
                "lon": _safe_float(lon),
                "loaded": int(loaded),
                "unloaded": int(unloaded),
                "resident": int(resident),
                "totalMs": _safe_float(total_ms),
            }
            for ts_ms, source_v, lat, lon, loaded, unloaded, resident, total_ms in rows
        ]

    def reset(self) -> None:
        # Delete the database file to reclaim space.
        # First stop the background thread so it can't write to a closed connection.
        self.stop(timeout_s=2.0)
        with self._lock:
            self._closed = True
            try:
                self.conn.close()
            except duckdb.Error:
                pass
            self.path.unlink(missing_ok=True)

    def _run(self) -> None:
        self.ensure_schema()
        batch: list[tuple] = []
        last_flush = time.time()

        def flush_batch() -> None:
            nonlocal batch
            if not batch:
                return
            with self._lock:
                self.conn.executemany(INSERT_UPDATES_SQL, batch)
                # Make results visible to readers immediately.
                self.conn.execute("CHECKPOINT;")
            # Rows count as finished only once they are on disk.
            for _ in batch:
                self._q.task_done()
            batch = []

        while not self._stop.is_set():
            try:
                e = self._q.get(timeout=0.05)
            except queue.Empty:
                e = None

            if e is not None:
                batch.append(e)

            # Flush on size, time, or an idle queue.
            now = time.time()
            if len(batch) >= 250 or (batch and (e is None or (now - last_flush) >= 0.5)):
                flush_batch()
                last_flush = now

        # Drain remaining
        try:
            while True:
                batch.append(self._q.get_nowait())
        except queue.Empty:
            pass
        flush_batch()


#
# NOTE: singleton accessors live in `telemetry/singleton.py` to keep this file smaller.
