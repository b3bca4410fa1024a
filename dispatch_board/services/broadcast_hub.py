import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import structlog
from fastapi import WebSocket

logger = structlog.get_logger(__name__)


def event_name(kind: str) -> str:
    return f"update_{kind}"


class BroadcastHub:
    """Live WebSocket subscribers. Membership lasts only as long as the connection."""

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._connections.add(ws)
        logger.info("subscriber_connected", subscribers=self.subscriber_count)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            if ws not in self._connections:
                return
            self._connections.discard(ws)
        logger.info("subscriber_disconnected", subscribers=self.subscriber_count)

    async def broadcast(self, event: str, payload: Any) -> int:
        data = {"event": event, "data": payload}
        async with self._lock:
            targets = list(self._connections)
        sent = 0
        dead: List[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(data)
                sent += 1
            except Exception as e:
                # best-effort; drop on failure
                logger.warning("broadcast_send_failed", channel=event, error=str(e))
                dead.append(ws)
        for ws in dead:
            await self.disconnect(ws)
        return sent


Reader = Callable[[], Awaitable[List[dict]]]


class BroadcastCoordinator:
    """
    Push-invalidate-with-fresh-read fan-out.

    After a mutation commits, ``notify(kind)`` re-reads the authoritative list for
    that kind and pushes the whole collection to every subscriber. A failed
    re-read is logged and the push skipped; the next successful mutation or a
    client refetch restores consistency. Nothing is retried on a timer.
    """

    def __init__(self, hub: BroadcastHub) -> None:
        self.hub = hub
        self._readers: Dict[str, Reader] = {}

    def register(self, kind: str, reader: Reader) -> None:
        self._readers[kind] = reader

    @property
    def kinds(self) -> List[str]:
        return list(self._readers)

    async def notify(self, kind: str) -> Optional[int]:
        """
        Re-read ``kind`` and push it under ``update_<kind>``.

        Returns:
            Number of subscribers reached, or None when the push was skipped
        """
        event = event_name(kind)
        reader = self._readers.get(kind)
        if reader is None:
            logger.error("broadcast_unknown_kind", kind=kind)
            return None
        try:
            payload = await reader()
        except Exception as e:
            logger.error("broadcast_reread_failed", channel=event, error=str(e))
            return None
        sent = await self.hub.broadcast(event, payload)
        logger.info("broadcast", channel=event, rows=len(payload), recipients=sent)
        return sent
