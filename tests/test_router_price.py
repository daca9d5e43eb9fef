"""
Price routing: ETH price ordering, name vs contract policies, validation fallback.
"""
from __future__ import annotations

import pytest

from chain_data.core.errors import AllProvidersFailedError
from chain_data.providers.registry import ProviderRegistry
from chain_data.providers.resilience import CircuitBreakerRegistry
from chain_data.router import Router
from tests.fakes import FakeClock, FakeCoinGecko, FakeDefiLlama, FakeEtherscan

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


def _router(*providers) -> Router:
    registry = ProviderRegistry()
    for p in providers:
        registry.register(p.provider_name, p)
    return Router(registry, breakers=CircuitBreakerRegistry(clock=FakeClock()))


class TestEthPrice:
    def test_explorer_first_when_configured(self):
        es, cg, dl = FakeEtherscan(3000.0), FakeCoinGecko(), FakeDefiLlama()
        result = _router(es, cg, dl).get_eth_price()
        assert result.price == 3000.0
        assert result.source == "etherscan"
        assert result.fallbacks_used == 0
        assert result.currency == "USD"
        assert cg.call_count == 0

    def test_unconfigured_explorer_not_listed(self):
        es, cg = FakeEtherscan(configured=False), FakeCoinGecko()
        result = _router(es, cg, FakeDefiLlama()).get_eth_price()
        assert result.source == "coingecko"
        # first position in the list, so no fallback was used
        assert result.fallbacks_used == 0
        assert es.call_count == 0
        assert result.change_24h_pct == 1.5

    def test_falls_through_to_defillama(self):
        result = _router(
            FakeEtherscan(fail=True), FakeCoinGecko(fail=True), FakeDefiLlama()
        ).get_eth_price()
        assert result.source == "defillama"
        assert result.fallbacks_used == 2
        assert result.price == 3002.0

    def test_zero_price_rejected(self):
        result = _router(FakeEtherscan(0.0), FakeCoinGecko()).get_eth_price()
        assert result.source == "coingecko"
        assert result.fallbacks_used == 1

    def test_missing_usd_is_a_failure(self):
        result = _router(FakeCoinGecko(prices={"ethereum": None}), FakeDefiLlama()).get_eth_price()
        assert result.source == "defillama"

    def test_all_fail(self):
        router = _router(FakeEtherscan(fail=True), FakeCoinGecko(fail=True), FakeDefiLlama(fail=True))
        with pytest.raises(AllProvidersFailedError) as exc_info:
            router.get_eth_price()
        message = str(exc_info.value)
        for name in ("etherscan", "coingecko", "defillama"):
            assert name in message

    def test_as_dict(self):
        d = _router(FakeCoinGecko()).get_eth_price().as_dict()
        assert d["price"] == 3001.0
        assert d["source"] == "coingecko"
        assert d["fallbacks_used"] == 0


class TestTokenPrice:
    def test_name_goes_to_coingecko_first(self):
        cg, dl = FakeCoinGecko(), FakeDefiLlama()
        result = _router(cg, dl).get_token_price("Bitcoin")
        assert result.source == "coingecko"
        assert result.price == 50000.0
        assert dl.call_count == 0

    def test_name_falls_back_to_symbol_mapping(self):
        dl = FakeDefiLlama(prices={"coingecko:bitcoin": 49999.0})
        result = _router(FakeCoinGecko(fail=True), dl).get_token_price("BTC")
        assert result.source == "defillama"
        assert result.fallbacks_used == 1
        assert dl.coin_lookups == ["coingecko:bitcoin"]

    def test_contract_goes_to_defillama_first(self):
        key = f"arbitrum:{USDC}"
        cg, dl = FakeCoinGecko(), FakeDefiLlama(prices={key: 1.0001})
        result = _router(cg, dl).get_token_price(USDC, chain="arbitrum")
        assert result.source == "defillama"
        assert dl.coin_lookups == [key]
        assert cg.call_count == 0

    def test_contract_falls_back_to_coingecko_platform(self):
        cg = FakeCoinGecko()
        result = _router(cg, FakeDefiLlama(fail=True)).get_token_price(USDC, chain="arbitrum")
        assert result.source == "coingecko"
        assert result.fallbacks_used == 1
        assert cg.contract_lookups == [("arbitrum-one", USDC)]

    def test_short_hex_is_treated_as_a_name(self):
        cg = FakeCoinGecko(prices={"0xabc": 2.0})
        result = _router(cg, FakeDefiLlama()).get_token_price("0xabc")
        assert result.source == "coingecko"
