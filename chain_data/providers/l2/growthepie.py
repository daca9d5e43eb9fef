"""
growthepie L2 analytics (free, no key).

  GET https://api.growthepie.com/v1/fundamentals.json
  GET https://api.growthepie.com/v1/master.json

fundamentals.json is a flat list of {origin_key, metric_key, date, value}
rows covering every day; only the latest row per chain/metric is kept.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...core.errors import ProviderError
from ..base import GrowthepieBlobFees, GrowthepieChainMetrics
from ..http import HTTP_TIMEOUT_S, HttpJsonClient
from ..resilience import TTL_STATIC, TTL_TVL, TTLCache

GROWTHEPIE_BASE_URL = "https://api.growthepie.com/v1"

def latest_metrics(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, float]]:
    """Reduce fundamentals rows to {chain: {metric: latest value}}."""
    latest: Dict[tuple, tuple] = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        chain, metric, date = row.get("origin_key"), row.get("metric_key"), row.get("date")
        if not chain or not metric or date is None:
            continue
        key = (chain, metric)
        if key not in latest or str(date) > latest[key][0]:
            latest[key] = (str(date), row.get("value"))

    out: Dict[str, Dict[str, float]] = {}
    for (chain, metric), (_, value) in latest.items():
        try:
            out.setdefault(chain, {})[metric] = float(value)
        except (TypeError, ValueError):
            continue
    return out


class GrowthepieClient:
    """Latest per-chain L2 fundamentals and chain metadata."""

    def __init__(self, timeout_s: float = HTTP_TIMEOUT_S, cache: Optional[TTLCache] = None) -> None:
        self._http = HttpJsonClient(self.provider_name, GROWTHEPIE_BASE_URL, timeout_s=timeout_s)
        self._cache = cache or TTLCache()

    @property
    def provider_name(self) -> str:
        return "growthepie"

    def get_fundamentals(self) -> Dict[str, Dict[str, float]]:
        def fetch() -> Dict[str, Dict[str, float]]:
            data = self._http.get_json("/fundamentals.json")
            if not isinstance(data, list):
                raise ProviderError(self.provider_name, f"Unexpected fundamentals response: {type(data)}")
            return latest_metrics(data)

        return self._cache.get_or_fetch("growthepie:fundamentals", TTL_TVL, fetch)

    def get_l2_chain(self, chain: str) -> Optional[GrowthepieChainMetrics]:
        """Latest metrics for one chain key (e.g. "arbitrum"), or None if unknown."""
        key = chain.lower()
        metrics = self.get_fundamentals().get(key)
        if metrics is None:
            return None
        return GrowthepieChainMetrics(
            chain=key,
            tvl=metrics.get("tvl"),
            txcount=metrics.get("txcount", 0.0),
            fees=metrics.get("txcosts", 0.0),
            daa=metrics.get("daa", 0.0),
            stables_mcap=metrics.get("stables_mcap", 0.0),
            rent_paid=metrics.get("rent_paid", 0.0),
        )

    def get_blob_data(self) -> List[GrowthepieBlobFees]:
        """Chains paying blob fees (rent_paid), largest first."""
        fees = [
            GrowthepieBlobFees(chain=chain, blob_fees=metrics.get("rent_paid", 0.0))
            for chain, metrics in self.get_fundamentals().items()
        ]
        return sorted((f for f in fees if f.blob_fees > 0), key=lambda f: f.blob_fees, reverse=True)

    def get_master(self) -> Dict[str, Any]:
        data = self._cache.get_or_fetch(
            "growthepie:master", TTL_STATIC, lambda: self._http.get_json("/master.json")
        )
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, "Unexpected master.json response")
        return data

    def list_chains(self) -> List[Dict[str, str]]:
        chains = [
            {
                "key": key,
                "name": (info or {}).get("chain_name") or key,
                "technology": (info or {}).get("technology") or "Unknown",
            }
            for key, info in self.get_master().items()
            # "metrics" is metadata, not a chain
            if key != "metrics" and (info is None or isinstance(info, dict))
        ]
        return sorted(chains, key=lambda c: c["name"])

    def probe(self) -> int:
        data = self._http.get_json("/master.json")
        return len(data) if isinstance(data, dict) else 0
