"""
CoinGecko market data.

Uses the free demo API unless a key is configured, in which case the Pro
API is used with the x-cg-pro-api-key header:
  GET https://api.coingecko.com/api/v3/simple/price?ids={ids}&vs_currencies=usd
  GET https://api.coingecko.com/api/v3/simple/token_price/{platform}?contract_addresses={addr}
  GET https://api.coingecko.com/api/v3/global
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ...core.errors import ProviderError
from ..base import CoinGeckoPrice
from ..http import HTTP_TIMEOUT_S, HttpJsonClient
from ..resilience import TTL_PRICE, TTL_TVL, RateLimiter, TTLCache

COINGECKO_DEMO_URL = "https://api.coingecko.com/api/v3"
COINGECKO_PRO_URL = "https://pro-api.coingecko.com/api/v3"

DEMO_REQUESTS_PER_MINUTE = 30
PRO_REQUESTS_PER_MINUTE = 500

# chain name -> CoinGecko asset platform id
PLATFORM_IDS: Dict[str, str] = {
    "ethereum": "ethereum",
    "arbitrum": "arbitrum-one",
    "optimism": "optimistic-ethereum",
    "polygon": "polygon-pos",
    "base": "base",
    "bsc": "binance-smart-chain",
    "avalanche": "avalanche",
}


def _to_float(x: Any) -> Optional[float]:
    if x is None:
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def platform_for_chain(chain: str) -> str:
    return PLATFORM_IDS.get(chain.lower(), chain.lower())


def _price_entry(coin_id: str, entry: Dict[str, Any]) -> CoinGeckoPrice:
    return CoinGeckoPrice(
        coin_id=coin_id,
        usd=_to_float(entry.get("usd")),
        usd_24h_change=_to_float(entry.get("usd_24h_change")),
        usd_market_cap=_to_float(entry.get("usd_market_cap")),
    )


class CoinGeckoClient:
    """Spot prices by coin id or contract, plus global market stats."""

    def __init__(
        self,
        api_key: str = "",
        timeout_s: float = HTTP_TIMEOUT_S,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.api_key = api_key
        if rate_limiter is None:
            per_minute = PRO_REQUESTS_PER_MINUTE if api_key else DEMO_REQUESTS_PER_MINUTE
            rate_limiter = RateLimiter(per_minute, 60.0)
        headers = {"x-cg-pro-api-key": api_key} if api_key else None
        self._http = HttpJsonClient(
            self.provider_name,
            COINGECKO_PRO_URL if api_key else COINGECKO_DEMO_URL,
            timeout_s=timeout_s,
            headers=headers,
            rate_limiter=rate_limiter,
            secrets=[api_key],
        )
        self._cache = cache or TTLCache()

    @property
    def provider_name(self) -> str:
        return "coingecko"

    def get_prices(self, coin_ids: Sequence[str]) -> Dict[str, CoinGeckoPrice]:
        ids = ",".join(c.lower() for c in coin_ids)
        params = {
            "ids": ids,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_market_cap": "true",
        }
        data = self._cache.get_or_fetch(
            f"coingecko:price:{ids}", TTL_PRICE, lambda: self._http.get_json("/simple/price", params)
        )
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, f"Unexpected CoinGecko response type: {type(data)}")
        return {cid: _price_entry(cid, entry) for cid, entry in data.items() if isinstance(entry, dict)}

    def get_price(self, coin_id: str) -> CoinGeckoPrice:
        coin_id = coin_id.lower()
        prices = self.get_prices([coin_id])
        if coin_id not in prices:
            raise ProviderError(self.provider_name, f"CoinGecko has no price for '{coin_id}'")
        return prices[coin_id]

    def get_token_price_by_contract(self, platform: str, address: str) -> CoinGeckoPrice:
        params = {
            "contract_addresses": address,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_market_cap": "true",
        }
        data = self._cache.get_or_fetch(
            f"coingecko:tokenprice:{platform}:{address.lower()}",
            TTL_PRICE,
            lambda: self._http.get_json(f"/simple/token_price/{platform}", params),
        )
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, f"Unexpected CoinGecko response type: {type(data)}")
        # keys come back lower-cased
        entry = data.get(address.lower()) or data.get(address)
        if not isinstance(entry, dict):
            raise ProviderError(
                self.provider_name, f"CoinGecko has no price for {address} on {platform}"
            )
        return _price_entry(address, entry)

    def get_global(self) -> Dict[str, Any]:
        data = self._cache.get_or_fetch(
            "coingecko:global", TTL_TVL, lambda: self._http.get_json("/global")
        )
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, "Unexpected CoinGecko /global response")
        return data.get("data", data)

    def probe(self) -> Dict[str, Any]:
        return self._http.get_json("/global")
