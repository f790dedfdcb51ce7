"""Tests for stream subscription routing."""

import asyncio
from unittest.mock import MagicMock

import pytest

from ddp_client.router import SubscriptionRouter
from ddp_client.session import Session


def _router(connected: bool = True):
    send = MagicMock()
    session = Session(send)
    if connected:
        session.handle_connected("s")
    return SubscriptionRouter(session, send), session, send


class TestSubscribe:
    def test_sends_sub_message(self):
        router, _, send = _router()
        sub_id = router.subscribe("stream-room-messages", "GENERAL", print)
        send.assert_called_once_with(
            {
                "msg": "sub",
                "id": sub_id,
                "name": "stream-room-messages",
                "params": ["GENERAL", {"useCollection": False, "args": []}],
            }
        )

    def test_subscription_ids_are_random(self):
        router, _, _ = _router()
        a = router.subscribe("stream-x", "k", print)
        b = router.subscribe("stream-x", "k", print)
        assert a != b

    def test_sub_waits_for_connection(self):
        router, session, send = _router(connected=False)
        router.subscribe("stream-x", "k", print)
        send.assert_not_called()
        session.handle_connected("s")
        assert send.call_args.args[0]["msg"] == "sub"

    def test_subscriptions_listed(self):
        router, _, _ = _router()
        router.subscribe("stream-x", "a", print)
        router.subscribe("stream-y", "b", print)
        assert sorted(s.route for s in router.subscriptions) == [
            "stream-x::a",
            "stream-y::b",
        ]


class TestDispatch:
    def test_delivers_first_arg(self):
        router, _, _ = _router()
        received = []
        router.subscribe("stream-room-messages", "GENERAL", received.append)
        count = router.dispatch("stream-room-messages", "GENERAL", [{"_id": "m1"}, {"extra": 1}])
        assert count == 1
        assert received == [{"_id": "m1"}]

    def test_fan_out_to_duplicate_subscriptions(self):
        router, _, _ = _router()
        a, b = [], []
        router.subscribe("stream-x", "k", a.append)
        router.subscribe("stream-x", "k", b.append)
        router.dispatch("stream-x", "k", ["evt"])
        assert a == ["evt"]
        assert b == ["evt"]

    def test_other_pairs_not_invoked(self):
        router, _, _ = _router()
        hit, miss_key, miss_name = [], [], []
        router.subscribe("stream-x", "k", hit.append)
        router.subscribe("stream-x", "other", miss_key.append)
        router.subscribe("stream-y", "k", miss_name.append)
        router.dispatch("stream-x", "k", ["evt"])
        assert hit == ["evt"]
        assert miss_key == []
        assert miss_name == []

    def test_non_stream_collection_ignored(self):
        router, _, _ = _router()
        received = []
        router.subscribe("users", "k", received.append)
        assert router.dispatch("users", "k", ["evt"]) == 0
        assert received == []

    def test_empty_args_delivers_none(self):
        router, _, _ = _router()
        received = []
        router.subscribe("stream-x", "k", received.append)
        router.dispatch("stream-x", "k", [])
        assert received == [None]

    def test_listener_error_isolated(self):
        router, _, _ = _router()
        received = []

        def boom(payload):
            raise ValueError("bad listener")

        router.subscribe("stream-x", "k", boom)
        router.subscribe("stream-x", "k", received.append)
        router.dispatch("stream-x", "k", ["evt"])
        assert received == ["evt"]

    @pytest.mark.asyncio
    async def test_async_listener_scheduled(self):
        router, _, _ = _router()
        received = []

        async def listener(payload):
            received.append(payload)

        router.subscribe("stream-x", "k", listener)
        router.dispatch("stream-x", "k", ["evt"])
        await asyncio.sleep(0)
        assert received == ["evt"]
