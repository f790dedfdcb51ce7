# =============================================================================
# DDP Client -- Wire Protocol Codec
# =============================================================================
#
# SockJS raw-websocket framing around DDP messages:
#
# Incoming (server -> client):
#   o               transport open
#   h               heartbeat
#   a["<json>",..]  data: array of JSON-encoded DDP messages (double encoded)
#   c[code,reason]  close
#
# Outgoing (client -> server):
#   ["<json>"]      single DDP message, double encoded
# =============================================================================

from __future__ import annotations

import base64
import re
import secrets
from typing import Any

import orjson

from ._logging import logger
from .constants import (
    DDP_SUPPORTED_VERSIONS,
    DDP_VERSION,
    MAX_MESSAGE_SIZE,
)
from .errors import DDPProtocolError
from .types import Envelope, FrameKind

_FRAME_RE = re.compile(r"^(o|h|c|a)(\[.*\])?$", re.DOTALL)
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")


def random_id(nbytes: int = 16) -> str:
    """Random base64 string with non-alphanumerics stripped."""
    raw = base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")
    return _NON_ALNUM_RE.sub("", raw)


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode()


class FrameCodec:
    """Encode and decode SockJS frames carrying DDP messages."""

    def decode(self, data: str | bytes) -> Envelope | None:
        """Decode a raw frame.  Malformed frames are logged and dropped."""
        try:
            return self.decode_strict(data)
        except DDPProtocolError as exc:
            logger.warning("Dropping malformed frame: %s", exc)
            return None

    def decode_strict(self, data: str | bytes) -> Envelope:
        """Decode a raw frame, raising :class:`DDPProtocolError` on failure."""
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DDPProtocolError("frame is not valid UTF-8") from exc

        if len(data) > MAX_MESSAGE_SIZE:
            raise DDPProtocolError(f"frame exceeds max size ({len(data)} bytes)")

        match = _FRAME_RE.match(data)
        if match is None:
            raise DDPProtocolError(f"unrecognized frame {data[:32]!r}")

        kind = FrameKind(match.group(1))
        body = match.group(2)

        if kind is FrameKind.DATA:
            return Envelope(kind=kind, messages=self._decode_messages(body))
        if kind is FrameKind.CLOSE:
            return Envelope(kind=kind, payload=self._loads(body) if body else None)
        return Envelope(kind=kind)

    def encode(self, message: dict[str, Any]) -> str:
        """Double-encode a DDP message: ``json([json(message)])``."""
        return _dumps([_dumps(message)])

    # -- Helpers ---------------------------------------------------------------

    def _decode_messages(self, body: str | None) -> tuple[dict[str, Any], ...]:
        if not body:
            raise DDPProtocolError("data frame without payload")
        items = self._loads(body)
        if not isinstance(items, list):
            raise DDPProtocolError("data frame payload is not an array")

        messages = []
        for item in items:
            if not isinstance(item, str):
                raise DDPProtocolError("data frame element is not a string")
            message = self._loads(item)
            if not isinstance(message, dict):
                raise DDPProtocolError("DDP message is not an object")
            messages.append(message)
        return tuple(messages)

    @staticmethod
    def _loads(text: str) -> Any:
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as exc:
            raise DDPProtocolError(f"invalid JSON: {exc}") from exc


# -- Outbound DDP messages -----------------------------------------------------


def connect_message() -> dict[str, Any]:
    return {
        "msg": "connect",
        "version": DDP_VERSION,
        "support": list(DDP_SUPPORTED_VERSIONS),
    }


def pong_message(ping_id: str | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"msg": "pong"}
    if ping_id is not None:
        message["id"] = ping_id
    return message


def method_message(method: str, params: list[Any], call_id: str) -> dict[str, Any]:
    return {"msg": "method", "method": method, "params": params, "id": call_id}


def sub_message(sub_id: str, name: str, key: str) -> dict[str, Any]:
    return {
        "msg": "sub",
        "id": sub_id,
        "name": name,
        "params": [key, {"useCollection": False, "args": []}],
    }
