"""
Tests for fake providers: deterministic data, switchable failure, call counting.

No live network; validates that fakes behave as the router tests assume.
"""

from __future__ import annotations

import pytest

from chain_data.core.errors import ConfigurationError, ProviderError
from chain_data.providers.base import is_configured

from .providers import FakeBlobscan, FakeClock, FakeCoinGecko, FakeDefiLlama, FakeEtherscan, FakeNode


class TestFakeData:
    def test_deterministic_prices(self):
        cg = FakeCoinGecko()
        assert cg.get_price("ethereum").usd == cg.get_price("ethereum").usd == 3001.0
        assert cg.call_count == 2

    def test_unknown_coin_is_provider_error(self):
        with pytest.raises(ProviderError):
            FakeDefiLlama().get_coin_price("coingecko:nope")

    def test_default_chains(self):
        names = [c.name for c in FakeDefiLlama().get_chains()]
        assert names == ["Ethereum", "Arbitrum"]


class TestFakeFailure:
    def test_fail_flag_raises_and_counts(self):
        blobscan = FakeBlobscan(fail=True, error="503")
        with pytest.raises(ProviderError, match="503"):
            blobscan.get_blob_stats()
        assert blobscan.calls == ["get_blob_stats"]

    def test_unconfigured_etherscan(self):
        etherscan = FakeEtherscan(configured=False)
        assert is_configured(etherscan) is False
        with pytest.raises(ConfigurationError):
            etherscan.get_eth_price()


def test_node_connect_switches_url():
    node = FakeNode(chain_id="8453", url="")
    assert node.is_configured() is False
    assert node.connect("http://base-node:8545") == "8453"
    assert node.is_configured() is True


def test_fake_clock():
    clock = FakeClock(start=5.0)
    clock.advance(2.5)
    assert clock() == 7.5
