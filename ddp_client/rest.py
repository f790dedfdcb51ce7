# =============================================================================
# DDP Client -- HTTP Side-Channel
# =============================================================================
#
# One-shot REST calls that bypass the realtime connection.
# =============================================================================

from __future__ import annotations

from typing import Any

import httpx

from ._logging import logger
from .constants import HTTPS_PORT, SEND_MESSAGE_PATH
from .errors import DDPSideChannelError


class RestClient:
    """Authenticated REST calls against the chat server.

    Args:
        host: Server host name, e.g. ``"open.rocket.chat"``.
        port: HTTPS port (default 443).
        transport: Optional ``httpx`` transport, e.g. ``httpx.MockTransport``.
        timeout: Request timeout in seconds, ``None`` to wait indefinitely.
    """

    def __init__(
        self,
        host: str,
        *,
        port: int = HTTPS_PORT,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = f"https://{host}:{port}"
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def send_message(
        self,
        message_id: str,
        room_id: str,
        text: str,
        *,
        auth_token: str,
        user_id: str,
    ) -> Any:
        """POST ``chat.sendMessage`` and return the decoded JSON body as-is."""
        body = {"message": {"_id": message_id, "rid": room_id, "msg": text}}
        headers = {"X-Auth-Token": auth_token, "X-User-Id": user_id}

        try:
            resp = await self._get_client().post(SEND_MESSAGE_PATH, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DDPSideChannelError(f"sendMessage request failed: {exc}") from exc

        logger.debug("sendMessage %s -> HTTP %d", message_id, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise DDPSideChannelError(
                f"sendMessage returned non-JSON body (HTTP {resp.status_code})"
            ) from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                transport=self._transport,
                timeout=self._timeout,
            )
        return self._client
