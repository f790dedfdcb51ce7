# =============================================================================
# DDP Client -- Session State Machine
# =============================================================================
#
# DISCONNECTED -> HANDSHAKING -> CONNECTED -> CLOSED
#
# Outbound traffic that needs a confirmed session is parked on a FIFO list
# of one-shot waiters and released when the server confirms the handshake.
# =============================================================================

from __future__ import annotations

from typing import Any, Callable

from ._logging import logger
from .protocol import connect_message, pong_message
from .types import SessionState

SendFn = Callable[[dict[str, Any]], Any]
ClosedListener = Callable[[Any], Any]


class Session:
    """Connection lifecycle and handshake handling.

    Args:
        send: Callable that encodes and transmits one DDP message.
        on_state_change: Optional observer called with every new state.
    """

    def __init__(
        self,
        send: SendFn,
        *,
        on_state_change: Callable[[SessionState], Any] | None = None,
    ) -> None:
        self._send = send
        self._on_state_change = on_state_change
        self._state = SessionState.DISCONNECTED
        self._session_id: str | None = None
        self._connected_waiters: list[Callable[[], Any]] = []
        self._closed_listeners: list[ClosedListener] = []
        self._close_payload: Any = None

    # -- Properties -----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == SessionState.CONNECTED

    @property
    def is_closed(self) -> bool:
        return self._state == SessionState.CLOSED

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def close_payload(self) -> Any:
        return self._close_payload

    @property
    def queued(self) -> int:
        """Number of waiters parked until the session is connected."""
        return len(self._connected_waiters)

    # -- Registration ---------------------------------------------------------

    def when_connected(self, fn: Callable[[], Any]) -> None:
        """Run *fn* now if connected, otherwise once the handshake completes.

        Waiters run in registration order.  Waiters registered on a closed
        session are discarded.
        """
        if self._state == SessionState.CONNECTED:
            fn()
        elif self._state == SessionState.CLOSED:
            logger.debug("Session closed, dropping queued send")
        else:
            self._connected_waiters.append(fn)

    def on_closed(self, fn: ClosedListener) -> None:
        self._closed_listeners.append(fn)

    # -- Transitions ----------------------------------------------------------

    def handle_open(self) -> None:
        """Transport opened: send the handshake."""
        if self._state != SessionState.DISCONNECTED:
            logger.debug("Ignoring open frame in state %s", self._state.value)
            return
        self._send(connect_message())
        self._set_state(SessionState.HANDSHAKING)

    def handle_connected(self, session_id: str | None = None) -> None:
        """Server confirmed the handshake."""
        if self._state in (SessionState.CONNECTED, SessionState.CLOSED):
            logger.debug("Ignoring connected message in state %s", self._state.value)
            return
        self._session_id = session_id
        self._set_state(SessionState.CONNECTED)
        logger.info("Session connected (session=%s)", session_id)

        waiters = self._connected_waiters
        self._connected_waiters = []
        for waiter in waiters:
            try:
                waiter()
            except Exception as exc:
                logger.error("Connected waiter failed: %s", exc)

    def handle_ping(self, ping_id: str | None = None) -> None:
        """Heartbeat probe from the server: answer immediately."""
        self._send(pong_message(ping_id))

    def handle_close(self, payload: Any = None) -> None:
        """Transport or protocol-level close.  Fires listeners once."""
        if self._state == SessionState.CLOSED:
            return
        self._close_payload = payload
        dropped = len(self._connected_waiters)
        self._connected_waiters.clear()
        self._set_state(SessionState.CLOSED)
        if dropped:
            logger.warning("Session closed with %d queued sends unsent", dropped)

        for listener in self._closed_listeners:
            try:
                listener(payload)
            except Exception as exc:
                logger.error("Closed listener failed: %s", exc)

    # -- State management -----------------------------------------------------

    def _set_state(self, new_state: SessionState) -> None:
        if new_state == self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug("State: %s -> %s", old.value, new_state.value)
        if self._on_state_change:
            self._on_state_change(new_state)
