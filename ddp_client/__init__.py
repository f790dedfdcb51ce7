"""Async DDP client over SockJS websockets, with a chat latency probe.

Usage::

    from ddp_client import connect

    async with connect("open.rocket.chat") as client:
        await client.login(resume_token)
        client.subscribe_stream("stream-room-messages", room_id, print)
        result = await client.call("getServerInfo")

Command line::

    ddp-probe latency --host open.rocket.chat --token ... --room ...
    ddp-probe ping --url ws://localhost:8010
"""

from ._version import __version__
from .client import DDPClient
from .errors import (
    DDPAuthError,
    DDPConfigError,
    DDPConnectionError,
    DDPError,
    DDPMethodError,
    DDPProtocolError,
    DDPSideChannelError,
    DDPTimeoutError,
)
from .latency import LatencyHarness
from .protocol import FrameCodec, random_id
from .types import (
    Envelope,
    FrameKind,
    LatencyRecord,
    Phase,
    SessionState,
    Subscription,
)


def connect(host: str, **kwargs) -> DDPClient:
    """Create a DDP client for *host*.

    Use as an async context manager. Keyword arguments are forwarded
    to :class:`DDPClient` -- common ones: ``secure``, ``http_port``,
    ``extra_headers``.

    Args:
        host: Server host name, e.g. ``"open.rocket.chat"``.
        **kwargs: Passed to :class:`DDPClient`.

    Returns:
        A :class:`DDPClient` instance.
    """
    return DDPClient(host, **kwargs)


__all__ = [
    "__version__",
    "connect",
    "DDPClient",
    "FrameCodec",
    "LatencyHarness",
    "random_id",
    "Envelope",
    "FrameKind",
    "LatencyRecord",
    "Phase",
    "SessionState",
    "Subscription",
    "DDPError",
    "DDPConnectionError",
    "DDPProtocolError",
    "DDPMethodError",
    "DDPAuthError",
    "DDPSideChannelError",
    "DDPTimeoutError",
    "DDPConfigError",
]
