from __future__ import annotations

import threading

from streaming.config import StreamingConfig
from streaming.manager import TileManager
from telemetry.singleton import get_store

_MANAGER: TileManager | None = None
_MANAGER_LOCK = threading.RLock()


def manager_lock() -> threading.RLock:
    """Serializes every call into the process-wide manager (it is not thread-safe)."""
    return _MANAGER_LOCK


def get_manager() -> TileManager:
    global _MANAGER
    with _MANAGER_LOCK:
        if _MANAGER is None or _MANAGER.disposed:
            store = get_store()
            _MANAGER = TileManager(
                StreamingConfig.from_env(),
                recorder=store.recorder("api") if store is not None else None,
            )
        return _MANAGER


def reset_manager() -> None:
    global _MANAGER
    with _MANAGER_LOCK:
        if _MANAGER is not None:
            _MANAGER.dispose()
        _MANAGER = None
