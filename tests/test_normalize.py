"""
Normalizers and validators: raw provider shapes to canonical results.
"""
from __future__ import annotations

import math

import pytest

from chain_data.core.errors import ValidationFailedError
from chain_data.providers.base import (
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
from chain_data.providers.normalize import (
    ASSUMED_BLOB_SIZE_BYTES,
    blob_stats_from_blobscan,
    blob_stats_from_growthepie,
    normalize_price,
    normalize_tvl,
    valid_blob_stats,
    valid_price,
    valid_tvl,
)


class TestPrices:
    def test_dispatch_per_source(self):
        assert normalize_price(EtherscanEthPrice(usd=3000.0)) == NormalizedPrice(price=3000.0)
        assert normalize_price(LlamaCoinPrice(coin_key="coingecko:ethereum", price=3001.0)).price == 3001.0
        cg = normalize_price(CoinGeckoPrice(coin_id="ethereum", usd=3002.0, usd_24h_change=2.0, usd_market_cap=1e9))
        assert cg.price == 3002.0
        assert cg.change_24h_pct == 2.0
        assert cg.market_cap_usd == 1e9
        assert cg.currency == "USD"

    def test_unknown_raw_type(self):
        with pytest.raises(TypeError):
            normalize_price({"usd": 1.0})

    def test_missing_value_is_validation_failure(self):
        with pytest.raises(ValidationFailedError):
            normalize_price(CoinGeckoPrice(coin_id="x", usd=None))
        with pytest.raises(ValidationFailedError):
            normalize_price(LlamaCoinPrice(coin_key="x", price=None))

    @pytest.mark.parametrize("price, ok", [(100.0, True), (0.0, False), (-1.0, False), (math.nan, False)])
    def test_valid_price(self, price, ok):
        assert valid_price(NormalizedPrice(price=price)) is ok


class TestTvl:
    def test_sources(self):
        assert normalize_tvl(GrowthepieChainMetrics(chain="base", tvl=9e9)) == NormalizedTvl(tvl_usd=9e9)
        assert normalize_tvl(LlamaChainTvl(name="Base", tvl=8e9)).tvl_usd == 8e9
        assert normalize_tvl(1234.5).tvl_usd == 1234.5

    def test_missing_chain_tvl(self):
        with pytest.raises(ValidationFailedError):
            normalize_tvl(LlamaChainTvl(name="Base", tvl=None))
        with pytest.raises(ValidationFailedError):
            normalize_tvl(GrowthepieChainMetrics(chain="base"))

    def test_valid_tvl(self):
        assert valid_tvl(NormalizedTvl(tvl_usd=0.0)) is True
        assert valid_tvl(NormalizedTvl(tvl_usd=-0.01)) is False


class TestBlobStats:
    def test_blobscan(self):
        stats = blob_stats_from_blobscan(BlobscanBlobStats(recent_blob_count=5, avg_blob_size=1000))
        assert stats == NormalizedBlobStats(recent_blob_count=5, average_blob_size_bytes=1000.0)

    def test_growthepie_approximation(self):
        stats = blob_stats_from_growthepie(
            [GrowthepieBlobFees("arbitrum", 1.0), GrowthepieBlobFees("base", 2.0), GrowthepieBlobFees("x", 0.0)]
        )
        assert stats.recent_blob_count == 2
        assert stats.average_blob_size_bytes == ASSUMED_BLOB_SIZE_BYTES == 131072

    def test_valid_blob_stats(self):
        assert valid_blob_stats(NormalizedBlobStats(0, 0.0)) is True
        assert valid_blob_stats(NormalizedBlobStats(-1, 0.0)) is False
