"""Tests for the websocket ping probe."""

import asyncio

import pytest

import websockets.asyncio.client

from ddp_client.config import PingSettings
from ddp_client.ping import PingProbe


class EchoSocket:
    """Answers every send with "pong" until *replies* frames went out."""

    def __init__(self, replies=None):
        self.replies = replies
        self.sent: list[str] = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self._delivered = 0

    async def send(self, frame):
        self.sent.append(frame)
        self._queue.put_nowait("pong")

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.replies is not None and self._delivered >= self.replies:
            raise StopAsyncIteration
        frame = await self._queue.get()
        self._delivered += 1
        return frame


class FakeConnect:
    def __init__(self, ws):
        self.ws = ws
        self.url = None

    def __call__(self, url, *args, **kwargs):
        self.url = url
        return self

    async def __aenter__(self):
        return self.ws

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.asyncio
async def test_sends_count_pings(monkeypatch):
    ws = EchoSocket()
    connect = FakeConnect(ws)
    monkeypatch.setattr(websockets.asyncio.client, "connect", connect)

    probe = PingProbe(PingSettings(server_url="ws://ping:8010", interval_ms=5))
    await probe.run(count=3)

    assert connect.url == "ws://ping:8010"
    assert ws.sent == ["ping", "ping", "ping"]
    assert probe.pings == 3
    assert probe.received[:2] == ["pong", "pong"]


@pytest.mark.asyncio
async def test_stops_when_server_closes(monkeypatch):
    ws = EchoSocket(replies=1)
    monkeypatch.setattr(websockets.asyncio.client, "connect", FakeConnect(ws))

    probe = PingProbe(PingSettings(interval_ms=5))
    await asyncio.wait_for(probe.run(), timeout=1.0)

    assert probe.received == ["pong"]
    assert probe.pings >= 1


@pytest.mark.asyncio
async def test_history_is_bounded(monkeypatch):
    ws = EchoSocket()
    monkeypatch.setattr(websockets.asyncio.client, "connect", FakeConnect(ws))

    probe = PingProbe(PingSettings(interval_ms=5), history=2)
    await probe.run(count=5)

    assert probe.pings == 5
    assert probe.replies >= 3
    assert probe.received == ["pong", "pong"]
