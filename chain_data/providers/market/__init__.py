"""Market data sources: CoinGecko prices and DefiLlama TVL/prices."""
from __future__ import annotations

from .coingecko import CoinGeckoClient, platform_for_chain
from .defillama import DefiLlamaClient, coin_key_for_contract, coin_key_for_symbol

__all__ = [
    "CoinGeckoClient",
    "DefiLlamaClient",
    "coin_key_for_contract",
    "coin_key_for_symbol",
    "platform_for_chain",
]
