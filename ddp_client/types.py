# =============================================================================
# DDP Client -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable


class SessionState(str, Enum):
    """Protocol session lifecycle.

    Flow: DISCONNECTED -> HANDSHAKING -> CONNECTED -> CLOSED.
    CLOSED is terminal; a new client is needed to reconnect.
    """

    DISCONNECTED = "disconnected"
    HANDSHAKING = "handshaking"
    CONNECTED = "connected"
    CLOSED = "closed"


class FrameKind(str, Enum):
    """SockJS frame tag."""

    OPEN = "o"
    HEARTBEAT = "h"
    DATA = "a"
    CLOSE = "c"


class Phase(str, Enum):
    """Timestamp slot of a latency measurement."""

    ISSUE = "issue"
    ACK = "ack"
    DELIVER = "deliver"


@dataclass(frozen=True, slots=True)
class Envelope:
    """One decoded transport frame.

    Attributes:
        kind: Frame tag.
        messages: DDP message objects carried by a data frame.
        payload: Close payload (``[code, reason]``) of a close frame.
    """

    kind: FrameKind
    messages: tuple[dict[str, Any], ...] = ()
    payload: Any = None


@dataclass
class Subscription:
    """A stream subscription registered with the router."""

    name: str
    key: str
    id: str
    callback: Callable[[Any], Any]

    @property
    def route(self) -> str:
        return f"{self.name}::{self.key}"


@dataclass(frozen=True, slots=True)
class LatencyRecord:
    """A completed issue/ack/deliver triple.

    Timestamps are in seconds from the harness clock; durations are
    reported in milliseconds relative to the issue time.  ``completed_at``
    is wall-clock UTC.
    """

    key: str
    issued_at: float
    acked_at: float
    delivered_at: float
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def ack_ms(self) -> float:
        return (self.acked_at - self.issued_at) * 1000

    @property
    def deliver_ms(self) -> float:
        return (self.delivered_at - self.issued_at) * 1000

    def to_csv(self) -> str:
        """``YYYY-MM-DD HH:MM:SS,<ack ms>,<deliver ms>``"""
        return (
            f"{self.completed_at:%Y-%m-%d %H:%M:%S},"
            f"{round(self.ack_ms)},{round(self.deliver_ms)}"
        )
