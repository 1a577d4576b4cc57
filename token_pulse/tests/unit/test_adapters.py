"""
TOKEN PULSE — Unit Tests for Source Adapters
"""
import pytest
from unittest.mock import AsyncMock, patch

from token_pulse.data.adapters.dexscreener_adapter import DexScreenerAdapter, pair_to_record
from token_pulse.data.adapters.jupiter_adapter import JupiterAdapter
from token_pulse.data.adapters.factory import create_source_adapters
from token_pulse.data.http_client import RetryingHttpClient, UpstreamError
from token_pulse.data.models import DataSource


# ─── DexScreener Normalization ──────────────────────────────────

class TestPairToRecord:
    def test_converts_usd_figures_with_own_price_ratio(self, sample_pair):
        record = pair_to_record(sample_pair)
        assert record.token_address == "MintAAA"
        assert record.token_name == "Alpha"
        assert record.token_ticker == "ALP"
        assert record.price_sol == 0.5
        assert record.volume_sol == pytest.approx(5.0)
        assert record.liquidity_sol == pytest.approx(10.0)
        assert record.market_cap_sol == pytest.approx(250.0)
        assert record.transaction_count == 15
        assert record.price_1hr_change == 1.5
        assert record.price_24hr_change == -3.2
        assert record.price_7d_change == 0.0
        assert record.protocol == DataSource.DEXSCREENER

    def test_market_cap_falls_back_to_fdv(self, sample_pair):
        del sample_pair["marketCap"]
        record = pair_to_record(sample_pair)
        assert record.market_cap_sol == pytest.approx(300.0)

    def test_missing_usd_price_counts_as_one(self, sample_pair):
        del sample_pair["priceUsd"]
        record = pair_to_record(sample_pair)
        assert record.volume_sol == pytest.approx(500.0)

    def test_zero_usd_price_yields_zero(self, sample_pair):
        sample_pair["priceUsd"] = "0"
        record = pair_to_record(sample_pair)
        assert record.volume_sol == 0.0
        assert record.market_cap_sol == 0.0

    def test_missing_sections_default_to_zero(self):
        record = pair_to_record({"baseToken": {"address": "M", "name": "N", "symbol": "S"}})
        assert record.price_sol == 0.0
        assert record.volume_sol == 0.0
        assert record.transaction_count == 0
        assert record.price_1hr_change == 0.0

    def test_missing_address_raises(self, sample_pair):
        sample_pair["baseToken"] = {"name": "nameless"}
        with pytest.raises(ValueError):
            pair_to_record(sample_pair)


# ─── DexScreener Adapter ────────────────────────────────────────

class TestDexScreenerAdapter:
    @pytest.mark.asyncio
    async def test_fetch_filters_chain(self, sample_pair):
        other_chain = dict(sample_pair, chainId="ethereum", baseToken={"address": "0xabc"})
        adapter = DexScreenerAdapter(http_client=RetryingHttpClient())
        with patch.object(adapter.http, "get_json", AsyncMock(return_value={"pairs": [sample_pair, other_chain]})) as mock_get:
            records = await adapter.fetch("SOL")
        assert [r.token_address for r in records] == ["MintAAA"]
        url = mock_get.call_args.args[0]
        assert url.endswith("/latest/dex/search")
        assert mock_get.call_args.kwargs["params"] == {"q": "SOL"}

    @pytest.mark.asyncio
    async def test_malformed_pair_skipped(self, sample_pair):
        bad = {"chainId": "solana", "pairAddress": "BAD", "baseToken": {}}
        adapter = DexScreenerAdapter(http_client=RetryingHttpClient())
        with patch.object(adapter.http, "get_json", AsyncMock(return_value={"pairs": [bad, sample_pair]})):
            records = await adapter.fetch("SOL")
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_null_pairs_is_empty(self):
        adapter = DexScreenerAdapter(http_client=RetryingHttpClient())
        with patch.object(adapter.http, "get_json", AsyncMock(return_value={"pairs": None})):
            assert await adapter.fetch("NOPE") == []

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_empty(self):
        adapter = DexScreenerAdapter(http_client=RetryingHttpClient())
        error = UpstreamError("https://api.dexscreener.com/latest/dex/search", 404, "not found")
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=error)):
            assert await adapter.fetch("SOL") == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_returns_empty(self):
        adapter = DexScreenerAdapter(http_client=RetryingHttpClient())
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await adapter.fetch("SOL") == []


# ─── Jupiter Adapter ────────────────────────────────────────────

def _jupiter_tokens(n):
    return [{"address": f"Mint{i}", "name": f"Token {i}", "symbol": f"T{i}"} for i in range(n)]


class TestJupiterAdapter:
    @pytest.mark.asyncio
    async def test_identity_and_price_only(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        search = {"tokens": _jupiter_tokens(2)}
        prices = {"data": {"Mint0": {"id": "Mint0", "price": "1.25"}, "Mint1": {"price": 3}}}
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=[search, prices])):
            records = await adapter.fetch("SOL")

        assert [r.token_address for r in records] == ["Mint0", "Mint1"]
        first = records[0]
        assert first.price_sol == 1.25
        assert first.token_ticker == "T0"
        assert first.protocol == DataSource.JUPITER
        assert first.volume_sol == 0.0
        assert first.market_cap_sol == 0.0
        assert first.liquidity_sol == 0.0
        assert first.transaction_count == 0
        assert first.price_24hr_change == 0.0

    @pytest.mark.asyncio
    async def test_only_top_twenty_priced(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        search = _jupiter_tokens(30)  # bare list payload
        prices = {"data": {f"Mint{i}": {"price": 1} for i in range(30)}}
        mock_get = AsyncMock(side_effect=[search, prices])
        with patch.object(adapter.http, "get_json", mock_get):
            records = await adapter.fetch("SOL")
        assert len(records) == 20
        ids = mock_get.call_args_list[1].kwargs["params"]["ids"]
        assert ids.split(",") == [f"Mint{i}" for i in range(20)]

    @pytest.mark.asyncio
    async def test_tokens_without_price_dropped(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        search = {"tokens": _jupiter_tokens(3)}
        prices = {"data": {"Mint1": {"price": 2}}}
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=[search, prices])):
            records = await adapter.fetch("SOL")
        assert [r.token_address for r in records] == ["Mint1"]

    @pytest.mark.asyncio
    async def test_empty_search_skips_price_lookup(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        mock_get = AsyncMock(return_value={"tokens": []})
        with patch.object(adapter.http, "get_json", mock_get):
            assert await adapter.fetch("ZZZ") == []
        assert mock_get.await_count == 1

    @pytest.mark.asyncio
    async def test_price_failure_returns_empty(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        error = UpstreamError("https://api.jup.ag/price/v2", 401, "unauthorized")
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=[{"tokens": _jupiter_tokens(2)}, error])):
            assert await adapter.fetch("SOL") == []

    @pytest.mark.asyncio
    async def test_missing_price_data_returns_empty(self):
        adapter = JupiterAdapter(http_client=RetryingHttpClient())
        with patch.object(adapter.http, "get_json", AsyncMock(side_effect=[{"tokens": _jupiter_tokens(2)}, {}])):
            assert await adapter.fetch("SOL") == []


# ─── Factory & Lifecycle ────────────────────────────────────────

class TestAdapterFactory:
    def test_shared_client(self):
        client = RetryingHttpClient()
        pair_source, registry_source = create_source_adapters(client)
        assert pair_source.http is client
        assert registry_source.http is client
        assert pair_source.source == DataSource.DEXSCREENER
        assert registry_source.source == DataSource.JUPITER

    @pytest.mark.asyncio
    async def test_disconnect_leaves_shared_client_open(self):
        client = RetryingHttpClient()
        pair_source, _ = create_source_adapters(client)
        with patch.object(client, "close", AsyncMock()) as mock_close:
            await pair_source.disconnect()
        mock_close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disconnect_closes_owned_client(self):
        adapter = DexScreenerAdapter()
        with patch.object(adapter.http, "close", AsyncMock()) as mock_close:
            await adapter.disconnect()
        mock_close.assert_awaited_once()
