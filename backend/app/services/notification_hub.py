from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class FacultyNotificationHub:
    """Websocket fan-out of slot notification events, keyed by faculty id."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, faculty_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[faculty_id].add(websocket)

    async def disconnect(self, faculty_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._discard(faculty_id, [websocket])

    def connection_count(self, faculty_id: str | None = None) -> int:
        if faculty_id is not None:
            return len(self._connections.get(faculty_id, ()))
        return sum(len(sockets) for sockets in self._connections.values())

    async def publish(self, faculty_id: str, payload: dict) -> None:
        async with self._lock:
            sockets = list(self._connections.get(faculty_id, ()))
        if not sockets:
            return

        stale: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(payload)
            except Exception:  # pragma: no cover - network/runtime dependent
                stale.append(websocket)

        if stale:
            async with self._lock:
                self._discard(faculty_id, stale)
            logger.debug("Dropped %d stale websocket(s) for faculty %s", len(stale), faculty_id)

    def _discard(self, faculty_id: str, sockets: list[WebSocket]) -> None:
        active = self._connections.get(faculty_id)
        if not active:
            return
        active.difference_update(sockets)
        if not active:
            self._connections.pop(faculty_id, None)


notification_hub = FacultyNotificationHub()
