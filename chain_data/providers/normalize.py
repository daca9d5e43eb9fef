"""
Map raw provider responses onto the canonical result types.

Each upstream answers in its own shape; routing compares and returns only
NormalizedPrice, NormalizedTvl and NormalizedBlobStats. A raw response
with no usable value raises ValidationFailedError, which the fallback
chain treats like any other provider failure.
"""
from __future__ import annotations

import math
from typing import Any, Sequence

from ..core.errors import ValidationFailedError
from .base import (
    BlobscanBlobStats,
    CoinGeckoPrice,
    EtherscanEthPrice,
    GrowthepieBlobFees,
    GrowthepieChainMetrics,
    LlamaChainTvl,
    LlamaCoinPrice,
    NormalizedBlobStats,
    NormalizedPrice,
    NormalizedTvl,
)

# EIP-4844 blob size; growthepie reports fees, not sizes
ASSUMED_BLOB_SIZE_BYTES = 128 * 1024


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def valid_price(result: NormalizedPrice) -> bool:
    return _finite(result.price) and result.price > 0


def valid_tvl(result: NormalizedTvl) -> bool:
    return _finite(result.tvl_usd) and result.tvl_usd >= 0


def valid_blob_stats(result: NormalizedBlobStats) -> bool:
    return result.recent_blob_count >= 0


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


def price_from_etherscan(raw: EtherscanEthPrice) -> NormalizedPrice:
    return NormalizedPrice(price=raw.usd)


def price_from_coingecko(raw: CoinGeckoPrice) -> NormalizedPrice:
    if raw.usd is None:
        raise ValidationFailedError(f"CoinGecko returned no USD price for {raw.coin_id}")
    return NormalizedPrice(
        price=raw.usd,
        change_24h_pct=raw.usd_24h_change,
        market_cap_usd=raw.usd_market_cap,
    )


def price_from_defillama(raw: LlamaCoinPrice) -> NormalizedPrice:
    if raw.price is None:
        raise ValidationFailedError(f"DefiLlama returned no price for {raw.coin_key}")
    return NormalizedPrice(price=raw.price)


def normalize_price(raw: Any) -> NormalizedPrice:
    """Dispatch on the raw response type."""
    if isinstance(raw, EtherscanEthPrice):
        return price_from_etherscan(raw)
    if isinstance(raw, CoinGeckoPrice):
        return price_from_coingecko(raw)
    if isinstance(raw, LlamaCoinPrice):
        return price_from_defillama(raw)
    raise TypeError(f"No price normalizer for {type(raw).__name__}")


# ---------------------------------------------------------------------------
# TVL
# ---------------------------------------------------------------------------


def tvl_from_growthepie(raw: GrowthepieChainMetrics) -> NormalizedTvl:
    if raw.tvl is None:
        raise ValidationFailedError(f"growthepie has no TVL for chain {raw.chain}")
    return NormalizedTvl(tvl_usd=raw.tvl)


def tvl_from_defillama_chain(raw: LlamaChainTvl) -> NormalizedTvl:
    if raw.tvl is None:
        raise ValidationFailedError(f"DefiLlama has no TVL for chain {raw.name}")
    return NormalizedTvl(tvl_usd=raw.tvl)


def tvl_from_protocol(tvl_usd: float) -> NormalizedTvl:
    return NormalizedTvl(tvl_usd=float(tvl_usd))


def normalize_tvl(raw: Any) -> NormalizedTvl:
    if isinstance(raw, GrowthepieChainMetrics):
        return tvl_from_growthepie(raw)
    if isinstance(raw, LlamaChainTvl):
        return tvl_from_defillama_chain(raw)
    if _finite(raw):
        return tvl_from_protocol(raw)
    raise TypeError(f"No TVL normalizer for {type(raw).__name__}")


# ---------------------------------------------------------------------------
# Blob stats
# ---------------------------------------------------------------------------


def blob_stats_from_blobscan(raw: BlobscanBlobStats) -> NormalizedBlobStats:
    return NormalizedBlobStats(
        recent_blob_count=raw.recent_blob_count,
        average_blob_size_bytes=float(raw.avg_blob_size),
    )


def blob_stats_from_growthepie(raw: Sequence[GrowthepieBlobFees]) -> NormalizedBlobStats:
    """Approximation: one entry per chain paying blob fees, full-size blobs assumed."""
    paying = [entry for entry in raw if entry.blob_fees > 0]
    return NormalizedBlobStats(
        recent_blob_count=len(paying),
        average_blob_size_bytes=float(ASSUMED_BLOB_SIZE_BYTES),
    )
