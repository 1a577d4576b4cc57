"""
TOKEN PULSE — DexScreener Pair Search Adapter
Pair aggregator source: many fields per match, reported in USD and converted
to SOL with each pair's own priceUsd/priceNative ratio.
"""
from typing import Any, List, Mapping, Optional

from token_pulse.data.adapters.base import BaseSourceAdapter
from token_pulse.data.http_client import RetryingHttpClient
from token_pulse.data.models import TokenRecord, DataSource
from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import get_logger
from token_pulse.utils.helpers import safe_float, safe_int, to_native

logger = get_logger("dexscreener_adapter")


def _section(pair: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = pair.get(key)
    return value if isinstance(value, Mapping) else {}


def pair_to_record(pair: Mapping[str, Any]) -> TokenRecord:
    """Normalize one DexScreener pair into a TokenRecord."""
    base = _section(pair, "baseToken")
    address = base.get("address")
    if not address:
        raise ValueError("pair has no baseToken.address")

    price_native = safe_float(pair.get("priceNative"))
    price_usd = pair.get("priceUsd")
    volume = _section(pair, "volume")
    liquidity = _section(pair, "liquidity")
    txns_24h = _section(_section(pair, "txns"), "h24")
    change = _section(pair, "priceChange")

    market_cap_usd = pair.get("marketCap") or pair.get("fdv") or 0

    return TokenRecord(
        token_address=str(address),
        token_name=str(base.get("name") or ""),
        token_ticker=str(base.get("symbol") or ""),
        price_sol=price_native,
        market_cap_sol=to_native(market_cap_usd, price_usd, price_native),
        volume_sol=to_native(volume.get("h24"), price_usd, price_native),
        liquidity_sol=to_native(liquidity.get("usd"), price_usd, price_native),
        transaction_count=safe_int(txns_24h.get("buys")) + safe_int(txns_24h.get("sells")),
        price_1hr_change=safe_float(change.get("h1")),
        price_24hr_change=safe_float(change.get("h24")),
        price_7d_change=0.0,  # not offered by the search endpoint
        protocol=DataSource.DEXSCREENER,
    )


class DexScreenerAdapter(BaseSourceAdapter):
    """DexScreener search adapter — primary, field-rich source."""

    def __init__(self, http_client: Optional[RetryingHttpClient] = None):
        super().__init__(source=DataSource.DEXSCREENER, http_client=http_client)
        self.settings = get_settings().data
        self.base_url = self.settings.dexscreener_base_url.rstrip("/")
        self.chain_id = self.settings.chain_id

    async def _fetch(self, query: str) -> List[TokenRecord]:
        url = f"{self.base_url}/latest/dex/search"
        data = await self.http.get_json(url, params={"q": query})

        pairs = data.get("pairs") if isinstance(data, dict) else None
        if not pairs:
            return []

        records: List[TokenRecord] = []
        for pair in pairs:
            if not isinstance(pair, dict) or pair.get("chainId") != self.chain_id:
                continue
            try:
                records.append(pair_to_record(pair))
            except (ValueError, TypeError) as e:
                logger.warning(
                    "dexscreener_pair_skipped",
                    query=query,
                    pair=pair.get("pairAddress", "???"),
                    error=str(e),
                )
        return records
