"""
TOKEN PULSE — WebSocket Broadcast Hub
Fans every refreshed snapshot out to connected dashboard clients.
"""
import asyncio
import json
from typing import Any, Optional, Set

from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import get_logger

logger = get_logger("broadcast")

PRICE_UPDATE_EVENT = "price-update"


def encode_event(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data})


class Broadcaster:
    """
    Holds the set of live subscribers. Anything with an async send_text()
    can subscribe (Starlette WebSocket in production, mocks in tests).
    A subscriber whose send fails or does not complete within
    send_timeout_seconds is dropped.
    """

    def __init__(self, send_timeout_seconds: Optional[float] = None):
        self.send_timeout_seconds = (
            send_timeout_seconds if send_timeout_seconds is not None
            else get_settings().ws_send_timeout_seconds
        )
        self._subscribers: Set[Any] = set()
        self._lock = asyncio.Lock()
        self._messages_published = 0

    async def register(self, ws: Any) -> None:
        async with self._lock:
            self._subscribers.add(ws)
        logger.info("subscriber_registered", subscribers=len(self._subscribers))

    async def unregister(self, ws: Any) -> None:
        async with self._lock:
            self._subscribers.discard(ws)
        logger.info("subscriber_unregistered", subscribers=len(self._subscribers))

    async def _send_text(self, ws: Any, payload: str) -> None:
        await asyncio.wait_for(ws.send_text(payload), timeout=self.send_timeout_seconds)

    async def send(self, ws: Any, event: str, data: Any) -> bool:
        """Send one event to a single subscriber."""
        try:
            await self._send_text(ws, encode_event(event, data))
            return True
        except Exception as e:
            logger.warning("subscriber_send_failed", event_name=event, error=str(e))
            return False

    async def publish(self, event: str, data: Any) -> int:
        """Send event to every subscriber. Returns how many received it."""
        async with self._lock:
            targets = list(self._subscribers)

        payload = encode_event(event, data)
        results = await asyncio.gather(
            *(self._send_text(ws, payload) for ws in targets),
            return_exceptions=True,
        )

        stale = [ws for ws, result in zip(targets, results) if isinstance(result, BaseException)]
        if stale:
            async with self._lock:
                for ws in stale:
                    self._subscribers.discard(ws)
            logger.warning("stale_subscribers_dropped", count=len(stale))

        self._messages_published += 1
        delivered = len(targets) - len(stale)
        logger.debug("event_published", event_name=event, delivered=delivered)
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def stats(self) -> dict:
        return {
            "subscribers": len(self._subscribers),
            "messages_published": self._messages_published,
        }
