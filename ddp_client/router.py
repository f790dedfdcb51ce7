# =============================================================================
# DDP Client -- Stream Subscription Router
# =============================================================================
#
# Listeners are keyed by "<stream name>::<key>".  The subscription id only
# satisfies the wire format; incoming events are matched by name and key,
# so every listener on the same pair receives the event.
# =============================================================================

from __future__ import annotations

import asyncio
from collections import defaultdict
from functools import partial
from typing import Any, Callable

from ._logging import logger
from .constants import STREAM_PREFIX
from .protocol import random_id, sub_message
from .session import SendFn, Session
from .types import Subscription

StreamCallback = Callable[[Any], Any]


class SubscriptionRouter:
    """Register stream listeners and fan out ``changed`` events to them."""

    def __init__(self, session: Session, send: SendFn) -> None:
        self._session = session
        self._send = send
        self._routes: dict[str, list[Subscription]] = defaultdict(list)
        self._background_tasks: set[asyncio.Task[Any]] = set()

    @property
    def subscriptions(self) -> list[Subscription]:
        return [sub for subs in self._routes.values() for sub in subs]

    def subscribe(self, name: str, key: str, callback: StreamCallback) -> str:
        """Subscribe to stream *name* for *key*.  Returns the subscription id."""
        subscription = Subscription(name=name, key=key, id=random_id(), callback=callback)
        self._routes[subscription.route].append(subscription)
        self._session.when_connected(
            partial(self._send, sub_message(subscription.id, name, key))
        )
        logger.debug("Subscribed to %s (sub=%s)", subscription.route, subscription.id)
        return subscription.id

    def dispatch(self, collection: str, event_name: str, args: list[Any]) -> int:
        """Deliver ``args[0]`` to every listener on ``collection::event_name``.

        Returns the number of listeners invoked.
        """
        if not collection.startswith(STREAM_PREFIX):
            return 0

        route = f"{collection}::{event_name}"
        subscriptions = list(self._routes.get(route, ()))
        payload = args[0] if args else None
        for subscription in subscriptions:
            try:
                result = subscription.callback(payload)
                if asyncio.iscoroutine(result):
                    self._fire_task(result)
            except Exception as exc:
                logger.error("Stream listener error for '%s': %s", route, exc)
        return len(subscriptions)

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
