"""
TOKEN PULSE — Base Source Adapter Interface
All price source adapters must implement this interface. The same contract is
consumed by the refresh scheduler and by the ad-hoc search path.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from token_pulse.data.http_client import RetryingHttpClient
from token_pulse.data.models import TokenRecord, DataSource
from token_pulse.utils.logger import get_logger

logger = get_logger("source_adapter")


class BaseSourceAdapter(ABC):
    """Abstract base class for all token price sources."""

    def __init__(self, source: DataSource, http_client: Optional[RetryingHttpClient] = None):
        self.source = source
        self._owns_client = http_client is None
        self.http = http_client or RetryingHttpClient()

    async def connect(self) -> None:
        """Sessions are opened lazily by the HTTP client."""
        logger.info("adapter_connected", source=self.source.value)

    async def disconnect(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.http.close()
        logger.info("adapter_disconnected", source=self.source.value)

    async def fetch(self, query: str) -> List[TokenRecord]:
        """
        Fetch and normalize records for query. Never raises: any transport or
        parse failure is logged and yields an empty list.
        """
        try:
            records = await self._fetch(query)
        except Exception as e:
            logger.error(
                f"{self.source.value}_fetch_failed",
                query=query,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []
        logger.debug(f"{self.source.value}_fetched", query=query, count=len(records))
        return records

    @abstractmethod
    async def _fetch(self, query: str) -> List[TokenRecord]:
        """Source-specific fetch; may raise."""
        pass
