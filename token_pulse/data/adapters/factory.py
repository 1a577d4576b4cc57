"""
TOKEN PULSE — Source Adapter Factory
"""
from typing import Optional, Tuple

from token_pulse.data.adapters.dexscreener_adapter import DexScreenerAdapter
from token_pulse.data.adapters.jupiter_adapter import JupiterAdapter
from token_pulse.data.http_client import RetryingHttpClient
from token_pulse.utils.logger import get_logger

logger = get_logger("adapter_factory")


def create_source_adapters(
    http_client: Optional[RetryingHttpClient] = None,
) -> Tuple[DexScreenerAdapter, JupiterAdapter]:
    """
    Build the pair-aggregator and token-registry adapters.

    When http_client is given both adapters share it and the caller is
    responsible for closing it.
    """
    pair_source = DexScreenerAdapter(http_client=http_client)
    registry_source = JupiterAdapter(http_client=http_client)
    logger.info(
        "source_adapters_created",
        pair_source=pair_source.source.value,
        registry_source=registry_source.source.value,
        shared_client=http_client is not None,
    )
    return pair_source, registry_source
