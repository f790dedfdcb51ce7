# =============================================================================
# DDP Client -- Async Client
# =============================================================================
#
# Primary public API: connect, login, method calls, stream subscriptions,
# and the REST side-channel for sending chat messages.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx

from ._logging import logger
from .connection import ConnectionManager, build_sockjs_url
from .constants import HTTPS_PORT
from .errors import DDPAuthError, DDPConnectionError, DDPTimeoutError
from .protocol import FrameCodec
from .registry import CorrelationRegistry
from .rest import RestClient
from .router import StreamCallback, SubscriptionRouter
from .session import ClosedListener, Session
from .types import Envelope, FrameKind, SessionState


class DDPClient:
    """Async DDP client over SockJS websockets.

    Args:
        host: Server host name, e.g. ``"open.rocket.chat"``.
        secure: Use ``wss://`` (default) or plain ``ws://``.
        http_port: Port of the REST side-channel (default 443).
        http_transport: Optional ``httpx`` transport for the side-channel.
        extra_headers: Additional HTTP headers for the websocket handshake.

    Example::

        async with DDPClient("open.rocket.chat") as client:
            await client.login(resume_token)
            client.subscribe_stream("stream-room-messages", room_id, print)
            await client.send_chat_message(random_id(), room_id, "hello")
    """

    def __init__(
        self,
        host: str,
        *,
        secure: bool = True,
        http_port: int = HTTPS_PORT,
        http_transport: httpx.AsyncBaseTransport | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self._host = host
        self._codec = FrameCodec()
        self._session = Session(self._send_message)
        self._registry = CorrelationRegistry(self._session, self._send_message)
        self._router = SubscriptionRouter(self._session, self._send_message)
        self._rest = RestClient(host, port=http_port, transport=http_transport)
        self._connection = ConnectionManager(
            build_sockjs_url(host, secure=secure),
            on_message=self._on_raw_frame,
            on_close=self._on_transport_close,
            extra_headers=extra_headers,
        )

        self.auth_token: str | None = None
        self.user_id: str | None = None

        # DDP message dispatch table
        self._message_handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "connected": self._handle_connected,
            "failed": self._handle_failed,
            "ping": self._handle_ping,
            "result": self._handle_result,
            "changed": self._handle_changed,
        }

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> DDPClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Properties -----------------------------------------------------------

    @property
    def host(self) -> str:
        return self._host

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    @property
    def session_id(self) -> str | None:
        return self._session.session_id

    @property
    def pending_calls(self) -> int:
        return self._registry.pending

    # -- Connect / Close ------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport.  The DDP handshake completes asynchronously."""
        await self._connection.connect()

    async def wait_connected(self, timeout: float | None = None) -> None:
        """Wait until the server has confirmed the handshake.

        Raises:
            DDPConnectionError: If the session is already closed.
            DDPTimeoutError: If *timeout* expires first.
        """
        if self._session.is_closed:
            raise DDPConnectionError("Session closed")
        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _connected() -> None:
            if not ready.done():
                ready.set_result(None)

        def _closed(payload: Any) -> None:
            if not ready.done():
                ready.set_exception(DDPConnectionError(f"Session closed: {payload!r}"))

        self._session.when_connected(_connected)
        self._session.on_closed(_closed)
        try:
            await asyncio.wait_for(ready, timeout=timeout)
        except asyncio.TimeoutError:
            raise DDPTimeoutError(f"Handshake not confirmed within {timeout}s")

    async def close(self) -> None:
        """Close the transport and the side-channel.  The session ends CLOSED."""
        try:
            await self._connection.disconnect()
        finally:
            await self._rest.aclose()
            self._session.handle_close({"reason": "client closed"})

    def on_close(self, fn: ClosedListener) -> ClosedListener:
        """Register a listener called once with the close payload.

        Usable as a decorator.
        """
        self._session.on_closed(fn)
        return fn

    # -- Methods / Streams ----------------------------------------------------

    def call(self, method: str, *params: Any) -> asyncio.Future[Any]:
        """Call a server method.  Sent as soon as the session is connected.

        Returns:
            Future resolving to the method result, or failing with
            :class:`~ddp_client.errors.DDPMethodError`.
        """
        return self._registry.issue(method, list(params))

    async def login(self, resume_token: str) -> dict[str, Any]:
        """Log in with a resume token and remember the auth credentials."""
        result = await self.call("login", {"resume": resume_token})
        self.auth_token = result["token"]
        self.user_id = result["id"]
        logger.info("Logged in as %s", self.user_id)
        return result

    def subscribe_stream(self, name: str, key: str, callback: StreamCallback) -> str:
        """Subscribe *callback* to stream events for ``(name, key)``."""
        return self._router.subscribe(name, key, callback)

    async def send_chat_message(self, message_id: str, room_id: str, text: str) -> Any:
        """Send a chat message through the REST side-channel.

        Raises:
            DDPAuthError: If :meth:`login` has not completed.
            DDPSideChannelError: On HTTP failure or a non-JSON response.
        """
        if not self.auth_token or not self.user_id:
            raise DDPAuthError("login required before sending messages")
        return await self._rest.send_message(
            message_id,
            room_id,
            text,
            auth_token=self.auth_token,
            user_id=self.user_id,
        )

    # -- Internal: outbound ---------------------------------------------------

    def _send_message(self, message: dict[str, Any]) -> None:
        frame = self._codec.encode(message)
        if not self._connection.send(frame):
            logger.debug("Transport closed, message not sent: %s", message.get("msg"))

    # -- Internal: inbound ----------------------------------------------------

    def _on_raw_frame(self, data: str | bytes) -> None:
        """Decode a transport frame and dispatch it."""
        envelope = self._codec.decode(data)
        if envelope is None:
            return
        self._dispatch_envelope(envelope)

    def _dispatch_envelope(self, envelope: Envelope) -> None:
        if envelope.kind is FrameKind.OPEN:
            self._session.handle_open()
        elif envelope.kind is FrameKind.HEARTBEAT:
            self._session.handle_ping()
        elif envelope.kind is FrameKind.CLOSE:
            self._session.handle_close(envelope.payload)
        else:
            for message in envelope.messages:
                self._dispatch_message(message)

    def _dispatch_message(self, message: dict[str, Any]) -> None:
        msg_type = message.get("msg")
        if not isinstance(msg_type, str) or msg_type not in self._message_handlers:
            logger.debug("Unhandled DDP message: %r", msg_type)
            return
        handler = self._message_handlers[msg_type]
        try:
            handler(message)
        except Exception as exc:
            logger.error("Error handling '%s' message: %s", msg_type, exc)

    def _on_transport_close(self, payload: dict[str, Any]) -> None:
        self._session.handle_close(payload)

    # -- DDP message handlers -------------------------------------------------

    def _handle_connected(self, message: dict[str, Any]) -> None:
        self._session.handle_connected(message.get("session"))

    def _handle_failed(self, message: dict[str, Any]) -> None:
        logger.error("Server refused DDP version (suggested %s)", message.get("version"))
        self._session.handle_close(message)

    def _handle_ping(self, message: dict[str, Any]) -> None:
        self._session.handle_ping(message.get("id"))

    def _handle_result(self, message: dict[str, Any]) -> None:
        call_id = message.get("id")
        if "error" in message:
            self._registry.reject(call_id, message["error"])
        else:
            self._registry.resolve(call_id, message.get("result"))

    def _handle_changed(self, message: dict[str, Any]) -> None:
        fields = message.get("fields") or {}
        self._router.dispatch(
            message.get("collection", ""),
            fields.get("eventName", ""),
            fields.get("args") or [],
        )
