# =============================================================================
# DDP Client -- Transport
# =============================================================================
#
# WebSocket lifecycle: open, receive loop, ordered send loop, close.
# Frames are handed to the client layer untouched; no reconnection.
# =============================================================================

from __future__ import annotations

import asyncio
import random
from typing import Any, Callable

import websockets
import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed

from ._logging import logger
from .constants import (
    CONNECTION_TIMEOUT,
    MAX_MESSAGE_SIZE,
    SOCKJS_SERVER_ID_MAX,
    WS_CLOSE_NORMAL,
)
from .errors import DDPConnectionError, DDPTimeoutError
from .protocol import random_id


def build_sockjs_url(host: str, *, secure: bool = True) -> str:
    """``wss://<host>/sockjs/<0-999>/<session id>/websocket``"""
    scheme = "wss" if secure else "ws"
    server_id = random.randint(0, SOCKJS_SERVER_ID_MAX)
    return f"{scheme}://{host}/sockjs/{server_id}/{random_id()}/websocket"


class ConnectionManager:
    """Owns the websocket and its receive/send tasks.

    Args:
        url: Full websocket URL.
        on_message: Called with every raw text frame, in arrival order.
        on_close: Called once with ``{"code": ..., "reason": ...}`` when
            the socket goes away for any reason.
        extra_headers: Additional HTTP headers for the opening handshake.
    """

    def __init__(
        self,
        url: str,
        *,
        on_message: Callable[[str | bytes], Any] | None = None,
        on_close: Callable[[dict[str, Any]], Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._on_close = on_close
        self._extra_headers = extra_headers or {}

        self._ws_cm: Any | None = None  # websocket context manager
        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False

        self._recv_task: asyncio.Task[None] | None = None
        self._send_task: asyncio.Task[None] | None = None
        self._cleanup_task: asyncio.Future[None] | None = None

    # -- Properties -----------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    # -- Connect / Disconnect -------------------------------------------------

    async def connect(self) -> None:
        """Open the websocket and start the receive and send loops."""
        if self._closed:
            raise DDPConnectionError("Connection is closed")
        if self._ws is not None:
            return

        try:
            self._ws_cm = websockets.asyncio.client.connect(
                self._url,
                additional_headers=self._extra_headers,
                max_size=MAX_MESSAGE_SIZE,
                open_timeout=None,  # asyncio.wait_for handles timeout
            )
            self._ws = await asyncio.wait_for(
                self._ws_cm.__aenter__(),
                timeout=CONNECTION_TIMEOUT,
            )
        except asyncio.TimeoutError:
            await self._release_cm()
            raise DDPTimeoutError(f"Connection timed out after {CONNECTION_TIMEOUT}s")
        except Exception as exc:
            await self._release_cm()
            raise DDPConnectionError(f"Failed to connect: {exc}") from exc

        logger.debug("WebSocket open: %s", self._url)
        self._recv_task = asyncio.create_task(self._recv_loop())
        self._send_task = asyncio.create_task(self._send_loop())

    async def disconnect(self) -> None:
        """Graceful shutdown.  Notifies ``on_close`` if not already closed."""
        tasks_to_await: list[asyncio.Task[None]] = []
        for task in (self._recv_task, self._send_task):
            if task is not None:
                task.cancel()
                tasks_to_await.append(task)
        self._recv_task = None
        self._send_task = None
        if tasks_to_await:
            await asyncio.gather(*tasks_to_await, return_exceptions=True)

        await self._release_cm()
        self._notify_closed(WS_CLOSE_NORMAL, "Client disconnect")

    # -- Send -----------------------------------------------------------------

    def send(self, frame: str) -> bool:
        """Queue a text frame.  Frames leave in the order they were queued."""
        if self._closed:
            logger.debug("Send after close dropped: %s", frame)
            return False
        self._outbox.put_nowait(frame)
        return True

    # -- Internal: loops ------------------------------------------------------

    async def _send_loop(self) -> None:
        assert self._ws is not None
        try:
            while True:
                frame = await self._outbox.get()
                logger.debug("[sending] %s", frame)
                await self._ws.send(frame)
        except asyncio.CancelledError:
            return
        except ConnectionClosed:
            logger.debug("Send failed: connection closed")
        except Exception as exc:
            logger.warning("Send loop error: %s", exc)

    async def _recv_loop(self) -> None:
        """Read frames until the socket closes."""
        ws = self._ws
        assert ws is not None
        try:
            async for message in ws:
                logger.debug("[receive] %s", message)
                if self._on_message:
                    try:
                        self._on_message(message)
                    except Exception as exc:
                        logger.error("Error dispatching frame: %s", exc)
        except asyncio.CancelledError:
            return
        except ConnectionClosed as exc:
            code = exc.rcvd.code if exc.rcvd else None
            reason = exc.rcvd.reason if exc.rcvd else ""
            self._handle_transport_closed(code, reason)
            return
        except Exception as exc:
            logger.warning("Receive loop error: %s", exc)
            self._handle_transport_closed(None, str(exc))
            return
        self._handle_transport_closed(ws.close_code, ws.close_reason or "")

    def _handle_transport_closed(self, code: int | None, reason: str) -> None:
        logger.debug("WebSocket closed: code=%s reason=%s", code, reason)
        if self._send_task:
            self._send_task.cancel()
            self._send_task = None
        self._recv_task = None
        # Schedule ws_cm cleanup (async, but we're in the receive task)
        self._cleanup_task = asyncio.ensure_future(self._release_cm())
        self._notify_closed(code, reason)

    def _notify_closed(self, code: int | None, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._ws = None
        if self._on_close:
            self._on_close({"code": code, "reason": reason})

    async def _release_cm(self) -> None:
        cm = self._ws_cm
        self._ws_cm = None
        self._ws = None
        if cm is not None:
            try:
                await cm.__aexit__(None, None, None)
            except Exception as exc:
                logger.debug("Error closing websocket: %s", exc)
