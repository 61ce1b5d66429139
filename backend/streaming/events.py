from __future__ import annotations

import logging
from typing import Callable

from tiles.types import Tile, TileEvent, TileEventType, TileListener

logger = logging.getLogger(__name__)


class _Registration:
    __slots__ = ("listener",)

    def __init__(self, listener: TileListener) -> None:
        self.listener = listener


class ListenerRegistry:
    """
    Ordered subscriber list.

    The same callable may be subscribed more than once; each unsubscribe
    closure removes only its own registration.
    """

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    def subscribe(self, listener: TileListener) -> Callable[[], None]:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        reg = _Registration(listener)
        self._registrations.append(reg)

        def unsubscribe() -> None:
            try:
                self._registrations.remove(reg)
            except ValueError:
                pass  # already removed (or registry cleared)

        return unsubscribe

    def emit(self, event_type: TileEventType, tiles: list[Tile]) -> TileEvent:
        """
        Deliver one batched event to every listener, in registration order.

        Iterates a snapshot so listeners may unsubscribe during delivery. A
        failing listener is logged and skipped.
        """
        event = TileEvent(type=event_type, tiles=tuple(tiles))
        for reg in list(self._registrations):
            try:
                reg.listener(event)
            except Exception:
                logger.exception(
                    "[Streaming] listener %r failed on %s event (%d tiles)",
                    reg.listener,
                    event_type,
                    len(event.tiles),
                )
        return event

    def clear(self) -> None:
        self._registrations.clear()

    def __len__(self) -> int:
        return len(self._registrations)
