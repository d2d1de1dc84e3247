"""Tests for callback delivery."""
import json

import httpx
import pytest
from vrouter_agent.dispatcher import CallbackClient


class TestCallbackClient:
    """Tests for CallbackClient.deliver."""

    @pytest.mark.asyncio
    async def test_deliver_posts_json_with_task_header(self, callback_client, callbacks):
        """The body is JSON and the task id travels as a header too."""
        ok = await callback_client.deliver(
            "http://mgmt/callback", "task-1", {"taskuuid": "task-1", "success": True}
        )

        assert ok
        assert len(callbacks) == 1
        request = callbacks[0]
        assert request.method == "POST"
        assert str(request.url) == "http://mgmt/callback"
        assert request.headers["taskuuid"] == "task-1"
        assert json.loads(request.content) == {"taskuuid": "task-1", "success": True}

    @pytest.mark.asyncio
    async def test_deliver_retries_until_accepted(self):
        """Error responses are retried at the fixed interval."""
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                return httpx.Response(503)
            return httpx.Response(200)

        client = CallbackClient(max_attempts=15, interval=0, transport=httpx.MockTransport(handler))

        assert await client.deliver("http://mgmt/callback", "task-2", {})
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_deliver_gives_up_after_max_attempts(self):
        """Exhausted retries return False instead of raising."""
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = CallbackClient(max_attempts=15, interval=0, transport=httpx.MockTransport(handler))

        assert await client.deliver("http://mgmt/callback", "task-3", {}) is False
        assert len(attempts) == 15

    def test_defaults(self):
        """Fifteen attempts one second apart by default."""
        client = CallbackClient()

        assert client.max_attempts == 15
        assert client.interval == 1.0
