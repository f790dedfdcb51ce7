"""Tests for the REST side-channel."""

import json

import httpx
import pytest

from ddp_client.errors import DDPSideChannelError
from ddp_client.rest import RestClient


def _rest(handler) -> RestClient:
    return RestClient("chat.example.com", transport=httpx.MockTransport(handler))


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"success": True})

        rest = _rest(handler)
        result = await rest.send_message("m1", "GENERAL", "hello", auth_token="t", user_id="u")
        await rest.aclose()

        assert result == {"success": True}
        request = requests[0]
        assert request.method == "POST"
        assert request.url.scheme == "https"
        assert request.url.host == "chat.example.com"
        assert request.url.path == "/api/v1/chat.sendMessage"
        assert request.headers["X-Auth-Token"] == "t"
        assert request.headers["X-User-Id"] == "u"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {
            "message": {"_id": "m1", "rid": "GENERAL", "msg": "hello"}
        }

    @pytest.mark.asyncio
    async def test_error_body_returned_verbatim(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"success": False, "error": "error-room-not-found"})

        rest = _rest(handler)
        result = await rest.send_message("m1", "nope", "x", auth_token="t", user_id="u")
        assert result == {"success": False, "error": "error-room-not-found"}

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        rest = _rest(handler)
        with pytest.raises(DDPSideChannelError):
            await rest.send_message("m1", "GENERAL", "x", auth_token="t", user_id="u")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        rest = _rest(handler)
        with pytest.raises(DDPSideChannelError):
            await rest.send_message("m1", "GENERAL", "x", auth_token="t", user_id="u")

    def test_base_url(self):
        assert RestClient("chat.example.com").base_url == "https://chat.example.com:443"
        assert RestClient("localhost", port=3000).base_url == "https://localhost:3000"
