# =============================================================================
# DDP Client -- Error Types
# =============================================================================

from __future__ import annotations

from typing import Any


class DDPError(Exception):
    """Base exception for all DDP client errors."""


class DDPConnectionError(DDPError):
    """Transport errors (failed to connect, session closed)."""


class DDPProtocolError(DDPError):
    """Wire protocol errors (malformed frames, unknown tags)."""


class DDPMethodError(DDPError):
    """A method call was answered with an error.

    The server payload is kept unmodified in :attr:`error`.
    """

    def __init__(self, error: Any) -> None:
        self.error = error
        reason = None
        if isinstance(error, dict):
            reason = error.get("reason") or error.get("message")
        super().__init__(f"Method error: {reason or error!r}")


class DDPAuthError(DDPError):
    """Operation requires a logged-in session."""


class DDPSideChannelError(DDPError):
    """HTTP side-channel request failed or returned an unreadable body."""


class DDPTimeoutError(DDPError):
    """Operation timed out."""


class DDPConfigError(DDPError):
    """Invalid or missing configuration value."""
