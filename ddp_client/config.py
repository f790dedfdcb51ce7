# =============================================================================
# DDP Client -- Probe Configuration
# =============================================================================

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .constants import PING_INTERVAL_MS, PING_SERVER_URL, SEND_INTERVAL_MS
from .errors import DDPConfigError

_TRUTHY = ("yes", "true")


@dataclass
class ProbeSettings:
    """Settings for the chat latency probe.

    Attributes:
        host: Chat server host (``HOST_URL``).
        auth_token: Resume token used to log in (``AUTH_TOKEN``).
        room_id: Room to post to and listen on (``ROOM_ID``).
        send_interval_ms: Delay between sends (``SEND_INTERVAL_MS``).
        debug: Log every frame (``DEBUG`` = ``yes`` / ``true``).
    """

    host: str
    auth_token: str
    room_id: str
    send_interval_ms: int = SEND_INTERVAL_MS
    debug: bool = False

    @property
    def send_interval(self) -> float:
        return self.send_interval_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProbeSettings:
        env = os.environ if environ is None else environ
        return cls(
            host=_require(env, "HOST_URL"),
            auth_token=_require(env, "AUTH_TOKEN"),
            room_id=_require(env, "ROOM_ID"),
            send_interval_ms=_interval(env, "SEND_INTERVAL_MS", SEND_INTERVAL_MS),
            debug=env.get("DEBUG", "no").lower() in _TRUTHY,
        )


@dataclass
class PingSettings:
    """Settings for the plain websocket ping probe."""

    server_url: str = PING_SERVER_URL
    interval_ms: int = PING_INTERVAL_MS

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PingSettings:
        env = os.environ if environ is None else environ
        return cls(
            server_url=env.get("SERVER_URL") or PING_SERVER_URL,
            interval_ms=_interval(env, "INTERVAL_MS", PING_INTERVAL_MS),
        )


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise DDPConfigError(f"{name} is not set")
    return value


def _interval(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    return parse_interval(raw, name)


def parse_interval(raw: str | int, name: str = "interval") -> int:
    """Parse a positive millisecond interval."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise DDPConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise DDPConfigError(f"{name} must be positive, got {value}")
    return value
