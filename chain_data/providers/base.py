"""
Provider data contracts.

Raw responses: each adapter returns a tagged, frozen dataclass describing
exactly what its upstream said (EtherscanEthPrice, CoinGeckoPrice, ...).
Canonical results: normalizers map raw responses into NormalizedPrice,
NormalizedTvl or NormalizedBlobStats, whatever the source.
Routed results: the router adds provenance (source, fallbacks_used).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Raw provider responses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EtherscanEthPrice:
    """Etherscan stats/ethprice."""

    usd: float
    btc: Optional[float] = None


@dataclass(frozen=True)
class CoinGeckoPrice:
    """One entry of CoinGecko /simple/price or /simple/token_price."""

    coin_id: str
    usd: Optional[float]
    usd_24h_change: Optional[float] = None
    usd_market_cap: Optional[float] = None


@dataclass(frozen=True)
class LlamaCoinPrice:
    """One entry of DefiLlama coins /prices/current."""

    coin_key: str
    price: Optional[float]
    symbol: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class LlamaChainTvl:
    """One entry of DefiLlama /v2/chains."""

    name: str
    tvl: Optional[float]
    chain_id: Optional[str] = None
    token_symbol: Optional[str] = None


@dataclass(frozen=True)
class GrowthepieChainMetrics:
    """Latest fundamentals for one L2 from growthepie."""

    chain: str
    tvl: Optional[float] = None
    txcount: float = 0.0
    fees: float = 0.0
    daa: float = 0.0
    stables_mcap: float = 0.0
    rent_paid: float = 0.0


@dataclass(frozen=True)
class GrowthepieBlobFees:
    """Blob fees (rent paid to L1) for one L2 from growthepie."""

    chain: str
    blob_fees: float


@dataclass(frozen=True)
class BlobscanBlobStats:
    """Stats derived from Blobscan's most recent blobs."""

    recent_blob_count: int
    avg_blob_size: float
    total_recent_size: int = 0


# ---------------------------------------------------------------------------
# Canonical (normalized) results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedPrice:
    price: float
    currency: str = "USD"
    change_24h_pct: Optional[float] = None
    market_cap_usd: Optional[float] = None


@dataclass(frozen=True)
class NormalizedTvl:
    tvl_usd: float
    breakdown: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class NormalizedBlobStats:
    recent_blob_count: int
    average_blob_size_bytes: float


# ---------------------------------------------------------------------------
# Routed results (canonical value + provenance)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriceResult:
    price: float
    currency: str
    source: str
    fallbacks_used: int
    change_24h_pct: Optional[float] = None
    market_cap_usd: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TvlResult:
    tvl_usd: float
    source: str
    fallbacks_used: int
    breakdown: Optional[Dict[str, float]] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BlobStatsResult:
    recent_blob_count: int
    average_blob_size_bytes: float
    source: str
    fallbacks_used: int

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RoutedResult(Generic[T]):
    """On-chain primitive result: the provider's value plus provenance."""

    value: T
    source: str
    fallbacks_used: int

    def as_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "source": self.source, "fallbacks_used": self.fallbacks_used}


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HealthStatus:
    source: str
    healthy: bool
    latency_ms: int
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SourceReading:
    source: str
    value: Optional[float]
    latency_ms: int
    error: Optional[str] = None


@dataclass(frozen=True)
class SourceComparison:
    query: str
    results: List[SourceReading]
    max_variance_pct: Optional[float]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_configured(provider: Any) -> bool:
    """Providers without an is_configured() hook need no setup."""
    check = getattr(provider, "is_configured", None)
    return bool(check()) if callable(check) else True
