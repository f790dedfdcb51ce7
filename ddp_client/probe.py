# =============================================================================
# DDP Client -- Chat Latency Probe
# =============================================================================
#
# Posts a message to a room at a fixed interval over the REST side-channel
# and times how long it takes to be acknowledged (HTTP response) and
# delivered back (room message stream).
# =============================================================================

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from ._logging import logger
from .client import DDPClient
from .config import ProbeSettings
from .constants import ROOM_MESSAGES_STREAM
from .errors import DDPConnectionError, DDPError
from .latency import LatencyHarness
from .protocol import random_id
from .types import LatencyRecord, Phase


class LatencyProbe:
    """Periodic send / ack / deliver measurement against one room.

    Args:
        client: A :class:`~ddp_client.client.DDPClient` (not yet connected).
        settings: Token, room and interval.
        on_record: Called with every completed
            :class:`~ddp_client.types.LatencyRecord`.
    """

    def __init__(
        self,
        client: DDPClient,
        settings: ProbeSettings,
        *,
        on_record: Callable[[LatencyRecord], Any] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._on_record = on_record
        self._harness = LatencyHarness(self._record_complete)
        self._closed = asyncio.Event()
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._sent = 0

    @property
    def harness(self) -> LatencyHarness:
        return self._harness

    @property
    def sent(self) -> int:
        return self._sent

    async def run(self, count: int | None = None) -> None:
        """Log in, subscribe, then send every interval until closed.

        Args:
            count: Stop after this many sends (``None`` runs until the
                session closes).
        """
        self._client.on_close(self._handle_close)
        await self._client.connect()
        await self._login()
        self._client.subscribe_stream(
            ROOM_MESSAGES_STREAM, self._settings.room_id, self._on_room_message
        )

        self._sent += 1
        await self.send_once()
        while not self._closed.is_set() and (count is None or self._sent < count):
            try:
                await asyncio.wait_for(
                    self._closed.wait(), timeout=self._settings.send_interval
                )
            except asyncio.TimeoutError:
                self._sent += 1
                self._fire_task(self.send_once())

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def _login(self) -> Any:
        """Log in, giving up if the session closes first."""
        task = asyncio.ensure_future(self._client.login(self._settings.auth_token))
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({task, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise DDPConnectionError("Session closed before login completed")
        return task.result()

    async def send_once(self) -> None:
        """Send one timed message."""
        msg_id = random_id()
        start_ms = int(time.time() * 1000)
        self._harness.mark(msg_id, Phase.ISSUE)
        try:
            await self._client.send_chat_message(
                msg_id,
                self._settings.room_id,
                f"random simple message {msg_id} - {start_ms}",
            )
        except DDPError as exc:
            logger.warning("Send of %s failed: %s", msg_id, exc)
            self._harness.discard(msg_id)
            return
        self._harness.mark(msg_id, Phase.ACK)

    def _on_room_message(self, data: Any) -> None:
        if not isinstance(data, dict):
            return
        msg_id = data.get("_id")
        # Only messages this probe sent carry an open timing
        if msg_id and self._harness.is_pending(msg_id):
            self._harness.mark(msg_id, Phase.DELIVER)

    def _record_complete(self, record: LatencyRecord) -> None:
        if self._on_record:
            self._on_record(record)
        else:
            logger.info(
                "done %s send: %.0fms receive: %.0fms",
                record.key,
                record.ack_ms,
                record.deliver_ms,
            )

    def _handle_close(self, payload: Any) -> None:
        logger.warning("Connection closed: %s", payload)
        self._closed.set()

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
