"""
TOKEN PULSE — HTTP Fetch With Retry
Shared aiohttp client used by every source adapter. Retries network failures,
rate limiting (429) and upstream 5xx with linear backoff; everything else
fails fast.
"""
import asyncio
import aiohttp
from typing import Any, Dict, Optional

from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import get_logger

logger = get_logger("http_client")


class UpstreamError(Exception):
    """A failed upstream request. status is None for network-level failures."""

    def __init__(self, url: str, status: Optional[int] = None, message: str = ""):
        self.url = url
        self.status = status
        self.message = message
        super().__init__(f"GET {url} -> {status if status is not None else 'network error'}: {message}")

    @property
    def retriable(self) -> bool:
        if self.status is None:
            return True
        return self.status == 429 or self.status >= 500


class RetryingHttpClient:
    """GET-and-decode-JSON client with a bounded retry budget."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        settings = get_settings().data
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.request_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.retry_backoff_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request_once(self, url: str, params: Optional[Dict[str, Any]]) -> Any:
        session = await self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise UpstreamError(url, resp.status, text[:300])
                return await resp.json(content_type=None)
        except UpstreamError:
            raise
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise UpstreamError(url, None, str(e) or type(e).__name__) from e

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetch url and return the decoded JSON body.
        Raises UpstreamError once the retry budget is spent or on a
        non-retriable status.
        """
        attempt = 0
        while True:
            try:
                return await self._request_once(url, params)
            except UpstreamError as e:
                if not e.retriable or attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = attempt * self.backoff_seconds
                logger.warning(
                    "upstream_retry",
                    url=url,
                    status=e.status,
                    attempt=attempt,
                    delay_seconds=delay,
                )
                await asyncio.sleep(delay)
