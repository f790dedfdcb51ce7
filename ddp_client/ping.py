# =============================================================================
# DDP Client -- Websocket Ping Probe
# =============================================================================
#
# Bare liveness check against a plain websocket endpoint: send "ping" every
# interval and log every frame that comes back.
# =============================================================================

from __future__ import annotations

import asyncio
from collections import deque

import websockets
import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed

from ._logging import logger
from .config import PingSettings
from .constants import PING_HISTORY, PING_PAYLOAD


class PingProbe:
    """Periodic text ping over a raw websocket.

    Only the last *history* replies are kept; ``replies`` counts them all.
    """

    def __init__(self, settings: PingSettings, *, history: int = PING_HISTORY) -> None:
        self._settings = settings
        self._received: deque[str | bytes] = deque(maxlen=history)
        self._pings = 0
        self._replies = 0

    @property
    def pings(self) -> int:
        return self._pings

    @property
    def replies(self) -> int:
        return self._replies

    @property
    def received(self) -> list[str | bytes]:
        return list(self._received)

    async def run(self, count: int | None = None) -> None:
        """Ping until the server closes the socket (or *count* pings)."""
        async with websockets.asyncio.client.connect(self._settings.server_url) as ws:
            recv_task = asyncio.create_task(self._recv_loop(ws))
            try:
                while not recv_task.done():
                    logger.info("> %s", PING_PAYLOAD)
                    try:
                        await ws.send(PING_PAYLOAD)
                    except ConnectionClosed:
                        break
                    self._pings += 1
                    if count is not None and self._pings >= count:
                        break
                    await asyncio.wait(
                        {recv_task}, timeout=self._settings.interval
                    )
            finally:
                recv_task.cancel()
                await asyncio.gather(recv_task, return_exceptions=True)

    async def _recv_loop(self, ws: websockets.asyncio.client.ClientConnection) -> None:
        try:
            async for frame in ws:
                logger.info("< %s", frame)
                self._received.append(frame)
                self._replies += 1
        except ConnectionClosed as exc:
            logger.debug("Ping socket error: %s", exc)
        logger.info("close")
