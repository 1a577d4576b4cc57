"""
TOKEN PULSE — Unit Tests for the Retrying HTTP Client
"""
import pytest
from unittest.mock import AsyncMock, patch

from token_pulse.data.http_client import RetryingHttpClient, UpstreamError

URL = "https://example.invalid/search"


# ─── UpstreamError ──────────────────────────────────────────────

class TestUpstreamError:
    def test_network_error_is_retriable(self):
        assert UpstreamError(URL, None, "reset").retriable is True

    def test_rate_limit_is_retriable(self):
        assert UpstreamError(URL, 429).retriable is True

    def test_server_errors_are_retriable(self):
        assert UpstreamError(URL, 500).retriable is True
        assert UpstreamError(URL, 503).retriable is True

    def test_client_errors_fail_fast(self):
        assert UpstreamError(URL, 400).retriable is False
        assert UpstreamError(URL, 404).retriable is False

    def test_message_names_url_and_status(self):
        err = UpstreamError(URL, 502, "bad gateway")
        assert URL in str(err)
        assert "502" in str(err)
        assert "network error" in str(UpstreamError(URL))


# ─── get_json Retry Budget ──────────────────────────────────────

class TestGetJson:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        client = RetryingHttpClient(max_retries=3, backoff_seconds=1.0)
        with patch.object(client, "_request_once", AsyncMock(return_value={"ok": True})) as req, \
                patch("token_pulse.data.http_client.asyncio.sleep", AsyncMock()) as sleep:
            assert await client.get_json(URL, params={"q": "SOL"}) == {"ok": True}
        req.assert_awaited_once_with(URL, {"q": "SOL"})
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_linear_backoff_then_success(self):
        client = RetryingHttpClient(max_retries=3, backoff_seconds=1.0)
        outcomes = [UpstreamError(URL), UpstreamError(URL, 503), UpstreamError(URL, 429), {"ok": 1}]
        with patch.object(client, "_request_once", AsyncMock(side_effect=outcomes)) as req, \
                patch("token_pulse.data.http_client.asyncio.sleep", AsyncMock()) as sleep:
            assert await client.get_json(URL) == {"ok": 1}
        assert req.await_count == 4
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_budget_exhausted_raises_last_error(self):
        client = RetryingHttpClient(max_retries=3, backoff_seconds=0.5)
        with patch.object(client, "_request_once", AsyncMock(side_effect=UpstreamError(URL, 500))) as req, \
                patch("token_pulse.data.http_client.asyncio.sleep", AsyncMock()) as sleep:
            with pytest.raises(UpstreamError) as exc_info:
                await client.get_json(URL)
        assert exc_info.value.status == 500
        # one initial attempt plus three retries
        assert req.await_count == 4
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 1.5]

    @pytest.mark.asyncio
    async def test_non_retriable_status_fails_fast(self):
        client = RetryingHttpClient(max_retries=3)
        with patch.object(client, "_request_once", AsyncMock(side_effect=UpstreamError(URL, 404))) as req, \
                patch("token_pulse.data.http_client.asyncio.sleep", AsyncMock()) as sleep:
            with pytest.raises(UpstreamError):
                await client.get_json(URL)
        assert req.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        client = RetryingHttpClient(max_retries=0)
        with patch.object(client, "_request_once", AsyncMock(side_effect=UpstreamError(URL, 503))) as req, \
                patch("token_pulse.data.http_client.asyncio.sleep", AsyncMock()):
            with pytest.raises(UpstreamError):
                await client.get_json(URL)
        assert req.await_count == 1


# ─── Settings Defaults ──────────────────────────────────────────

class TestClientDefaults:
    def test_defaults_from_settings(self):
        client = RetryingHttpClient()
        assert client.timeout_seconds == 10
        assert client.max_retries == 3
        assert client.backoff_seconds == 1.0

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        client = RetryingHttpClient()
        await client.close()
        assert client._session is None
