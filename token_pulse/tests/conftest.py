"""
TOKEN PULSE — Test Configuration & Fixtures
Shared fixtures for all test modules.
"""
import pytest

from token_pulse.tests.factories import DictRedis, DownRedis, make_record


@pytest.fixture
def dict_redis():
    return DictRedis()


@pytest.fixture
def down_redis():
    return DownRedis()


@pytest.fixture
def sample_pair():
    """A DexScreener search pair on Solana, USD figures with a 0.5/100 SOL ratio."""
    return {
        "chainId": "solana",
        "pairAddress": "PAIR1",
        "baseToken": {"address": "MintAAA", "name": "Alpha", "symbol": "ALP"},
        "priceNative": "0.5",
        "priceUsd": "100",
        "marketCap": 50000,
        "fdv": 60000,
        "volume": {"h24": 1000, "h1": 50},
        "liquidity": {"usd": 2000},
        "txns": {"h24": {"buys": 10, "sells": 5}},
        "priceChange": {"h1": 1.5, "h24": -3.2},
    }


@pytest.fixture
def twenty_five_records():
    """25 records with volumes 0..24 in ascending order."""
    return [make_record(f"addr{i:02d}", volume=float(i)) for i in range(25)]
