"""
Tests for the retrying HTTP helper
"""
import httpx
import pytest
from tenacity import wait_none

import http_client


@pytest.fixture
def no_wait(monkeypatch):
    monkeypatch.setattr(http_client, "RETRY_WAIT", wait_none())


def mock_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(http_client.httpx, "AsyncClient", factory)


class TestRequestWithRetry:

    @pytest.mark.asyncio
    async def test_retries_connection_errors_then_succeeds(self, monkeypatch, no_wait):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"ok": True})

        mock_transport(monkeypatch, handler)

        response = await http_client.request_with_retry("GET", "https://example.test/x", label="test")

        assert response.status_code == 200
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self, monkeypatch, no_wait):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        mock_transport(monkeypatch, handler)

        with pytest.raises(httpx.ConnectError):
            await http_client.request_with_retry("GET", "https://example.test/x")
        assert len(calls) == http_client.MAX_ATTEMPTS

    @pytest.mark.asyncio
    async def test_http_errors_are_not_retried(self, monkeypatch, no_wait):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="down")

        mock_transport(monkeypatch, handler)

        response = await http_client.request_with_retry("POST", "https://example.test/x", json={"a": 1})

        assert response.status_code == 503
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_read_timeout_is_retried(self, monkeypatch, no_wait):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow upstream", request=request)
            return httpx.Response(200, json={"ok": True})

        mock_transport(monkeypatch, handler)

        response = await http_client.request_with_retry("GET", "https://example.test/slow")

        assert response.status_code == 200
        assert len(calls) == 2

    def test_transient_classification(self):
        request = httpx.Request("GET", "https://example.test")
        assert http_client.is_transient_error(httpx.ReadError("reset", request=request))
        assert http_client.is_transient_error(httpx.ReadTimeout("slow", request=request))
        assert not http_client.is_transient_error(ValueError("nope"))
