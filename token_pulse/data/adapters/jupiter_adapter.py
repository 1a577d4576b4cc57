"""
TOKEN PULSE — Jupiter Token Registry + Price Adapter
Sparse source: token identity from the registry search, price from the batch
price endpoint. Volume, market cap, liquidity and change fields stay at 0.
"""
from typing import Any, Dict, List, Optional

from token_pulse.data.adapters.base import BaseSourceAdapter
from token_pulse.data.http_client import RetryingHttpClient
from token_pulse.data.models import TokenRecord, DataSource
from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import get_logger
from token_pulse.utils.helpers import safe_float

logger = get_logger("jupiter_adapter")


def _extract_tokens(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("tokens") or []
    if not isinstance(payload, list):
        return []
    return [t for t in payload if isinstance(t, dict) and t.get("address")]


class JupiterAdapter(BaseSourceAdapter):
    """Jupiter adapter — backup source with identity and price only."""

    def __init__(self, http_client: Optional[RetryingHttpClient] = None):
        super().__init__(source=DataSource.JUPITER, http_client=http_client)
        self.settings = get_settings().data
        self.search_url = self.settings.jupiter_search_url
        self.price_url = self.settings.jupiter_price_url
        self.max_tokens = self.settings.jupiter_max_tokens

    async def _fetch(self, query: str) -> List[TokenRecord]:
        search = await self.http.get_json(self.search_url, params={"query": query})
        tokens = _extract_tokens(search)[: self.max_tokens]
        if not tokens:
            return []

        ids = ",".join(t["address"] for t in tokens)
        prices_payload = await self.http.get_json(self.price_url, params={"ids": ids})
        prices = prices_payload.get("data") if isinstance(prices_payload, dict) else None
        if not prices:
            logger.warning("jupiter_no_prices", query=query, requested=len(tokens))
            return []

        records: List[TokenRecord] = []
        for token in tokens:
            entry = prices.get(token["address"])
            if not entry:
                continue
            # Price is quoted in USDC; cross-unit normalization is not attempted
            records.append(
                TokenRecord(
                    token_address=token["address"],
                    token_name=str(token.get("name") or ""),
                    token_ticker=str(token.get("symbol") or ""),
                    price_sol=safe_float(entry.get("price")),
                    protocol=DataSource.JUPITER,
                )
            )
        return records
