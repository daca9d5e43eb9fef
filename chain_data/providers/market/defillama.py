"""
DefiLlama TVL and coin prices (free API, no key required).

  GET https://api.llama.fi/v2/chains
  GET https://api.llama.fi/tvl/{protocol}
  GET https://coins.llama.fi/prices/current/{coins}

Coins are keyed "<chain>:<address>" or "coingecko:<id>".
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from ...core.errors import ProviderError
from ..base import LlamaChainTvl, LlamaCoinPrice
from ..http import HTTP_TIMEOUT_S, HttpJsonClient
from ..resilience import TTL_PRICE, TTL_PROTOCOL, TTL_TVL, TTLCache

DEFILLAMA_BASE_URL = "https://api.llama.fi"
DEFILLAMA_COINS_URL = "https://coins.llama.fi"

# Common symbols -> DefiLlama coin keys
SYMBOL_TO_COIN_KEY: Dict[str, str] = {
    "bitcoin": "coingecko:bitcoin",
    "btc": "coingecko:bitcoin",
    "ethereum": "coingecko:ethereum",
    "eth": "coingecko:ethereum",
    "usdc": "ethereum:0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "usdt": "ethereum:0xdAC17F958D2ee523a2206206994597C13D831ec7",
    "dai": "ethereum:0x6B175474E89094C44Da98b954EedeAC495271d0F",
}


def coin_key_for_symbol(token: str) -> str:
    token = token.lower()
    return SYMBOL_TO_COIN_KEY.get(token, f"coingecko:{token}")


def coin_key_for_contract(chain: str, address: str) -> str:
    return f"{chain.lower()}:{address}"


def _to_float(x: Any) -> Optional[float]:
    if x is None:
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


class DefiLlamaClient:
    """Chain TVL, protocol TVL and coin prices."""

    def __init__(
        self,
        api_key: str = "",
        timeout_s: float = HTTP_TIMEOUT_S,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.api_key = api_key
        self._http = HttpJsonClient(
            self.provider_name, DEFILLAMA_BASE_URL, timeout_s=timeout_s, secrets=[api_key]
        )
        self._coins = HttpJsonClient(
            self.provider_name, DEFILLAMA_COINS_URL, timeout_s=timeout_s, secrets=[api_key]
        )
        self._cache = cache or TTLCache()

    @property
    def provider_name(self) -> str:
        return "defillama"

    def _chains_payload(self) -> List[Dict[str, Any]]:
        data = self._cache.get_or_fetch(
            "defillama:chains", TTL_TVL, lambda: self._http.get_json("/v2/chains")
        )
        if not isinstance(data, list):
            raise ProviderError(self.provider_name, f"Unexpected DefiLlama /v2/chains response: {type(data)}")
        return data

    def get_chains(self) -> List[LlamaChainTvl]:
        out = []
        for item in self._chains_payload():
            if not isinstance(item, dict) or not item.get("name"):
                continue
            chain_id = item.get("chainId")
            out.append(
                LlamaChainTvl(
                    name=str(item["name"]),
                    tvl=_to_float(item.get("tvl")),
                    chain_id=str(chain_id) if chain_id is not None else None,
                    token_symbol=item.get("tokenSymbol"),
                )
            )
        return out

    def get_protocol_tvl(self, protocol: str) -> float:
        slug = protocol.lower()
        data = self._cache.get_or_fetch(
            f"defillama:tvl:{slug}", TTL_PROTOCOL, lambda: self._http.get_json(f"/tvl/{quote(slug)}")
        )
        value = _to_float(data)
        if value is None:
            raise ProviderError(self.provider_name, f"DefiLlama returned no TVL for '{protocol}'")
        return value

    def get_coin_prices(self, coin_keys: Sequence[str]) -> Dict[str, LlamaCoinPrice]:
        joined = ",".join(coin_keys)
        data = self._cache.get_or_fetch(
            f"defillama:prices:{joined}",
            TTL_PRICE,
            lambda: self._coins.get_json(f"/prices/current/{quote(joined, safe=',:')}"),
        )
        coins = data.get("coins") if isinstance(data, dict) else None
        if not isinstance(coins, dict):
            raise ProviderError(self.provider_name, "Unexpected DefiLlama prices response")
        return {
            key: LlamaCoinPrice(
                coin_key=key,
                price=_to_float(entry.get("price")),
                symbol=entry.get("symbol"),
                confidence=_to_float(entry.get("confidence")),
            )
            for key, entry in coins.items()
            if isinstance(entry, dict)
        }

    def get_coin_price(self, coin_key: str) -> LlamaCoinPrice:
        prices = self.get_coin_prices([coin_key])
        if coin_key in prices:
            return prices[coin_key]
        # DefiLlama may echo address keys in a different case
        for key, price in prices.items():
            if key.lower() == coin_key.lower():
                return price
        raise ProviderError(self.provider_name, f"DefiLlama has no price for '{coin_key}'")

    def probe(self) -> int:
        return len(self._http.get_json("/v2/chains"))
