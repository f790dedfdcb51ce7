# =============================================================================
# DDP Client -- Method Call Correlation
# =============================================================================

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from functools import partial
from typing import Any

from ._logging import logger
from .errors import DDPConnectionError, DDPMethodError
from .protocol import method_message
from .session import SendFn, Session


@dataclass
class PendingCall:
    id: str
    method: str
    created_at: float
    future: asyncio.Future[Any]


class CorrelationRegistry:
    """Match method calls to their ``result`` messages.

    Call ids come from a per-connection counter starting at 1 and are
    sent as decimal strings.  Each id settles at most once; results for
    unknown or already-settled ids are ignored.
    """

    def __init__(self, session: Session, send: SendFn) -> None:
        self._session = session
        self._send = send
        self._counter = 0
        self._pending: dict[str, PendingCall] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def is_pending(self, call_id: str) -> bool:
        return call_id in self._pending

    def issue(self, method: str, params: list[Any]) -> asyncio.Future[Any]:
        """Register a call and send it once the session is connected.

        The future is returned immediately, before the call is on the wire.
        """
        self._counter += 1
        call_id = str(self._counter)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        if self._session.is_closed:
            future.set_exception(
                DDPConnectionError(f"Session closed, cannot call '{method}'")
            )
            return future

        self._pending[call_id] = PendingCall(
            id=call_id,
            method=method,
            created_at=time.monotonic(),
            future=future,
        )
        self._session.when_connected(
            partial(self._send, method_message(method, params, call_id))
        )
        return future

    def resolve(self, call_id: str, result: Any) -> bool:
        call = self._take(call_id)
        if call is None:
            return False
        call.future.set_result(result)
        logger.debug(
            "Call %s (%s) resolved in %.1fms",
            call_id,
            call.method,
            (time.monotonic() - call.created_at) * 1000,
        )
        return True

    def reject(self, call_id: str, error: Any) -> bool:
        call = self._take(call_id)
        if call is None:
            return False
        call.future.set_exception(DDPMethodError(error))
        logger.debug("Call %s (%s) rejected: %r", call_id, call.method, error)
        return True

    def _take(self, call_id: str) -> PendingCall | None:
        call = self._pending.pop(call_id, None)
        if call is None:
            logger.debug("Result for unknown call id %r ignored", call_id)
            return None
        if call.future.done():
            logger.debug("Call %s already settled, ignoring result", call_id)
            return None
        return call
