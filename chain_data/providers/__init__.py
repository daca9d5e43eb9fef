"""
Provider architecture for routed blockchain and DeFi data.

One adapter per upstream (block explorer, JSON-RPC node, CoinGecko,
DefiLlama, growthepie, Blobscan), looked up by name through a registry.
Ordered fallback, circuit breakers and result normalization sit on top.
"""

from __future__ import annotations

from .base import (
    BlobStatsResult,
    HealthStatus,
    NormalizedBlobStats,
    NormalizedPrice,
    NormalizedTvl,
    PriceResult,
    RoutedResult,
    SourceComparison,
    SourceReading,
    TvlResult,
)
from .chain import FallbackExecutor, FallbackOutcome, ProviderAttempt
from .registry import ProviderRegistry
from .resilience import CircuitBreaker, CircuitBreakerRegistry, SlotDecision

__all__ = [
    "BlobStatsResult",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "FallbackExecutor",
    "FallbackOutcome",
    "HealthStatus",
    "NormalizedBlobStats",
    "NormalizedPrice",
    "NormalizedTvl",
    "PriceResult",
    "ProviderAttempt",
    "ProviderRegistry",
    "RoutedResult",
    "SlotDecision",
    "SourceComparison",
    "SourceReading",
    "TvlResult",
]
