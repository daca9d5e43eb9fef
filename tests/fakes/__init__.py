"""Fake providers and fixtures for routing tests (no live network)."""

from .providers import (
    FakeBlobscan,
    FakeClock,
    FakeCoinGecko,
    FakeDefiLlama,
    FakeEtherscan,
    FakeGrowthepie,
    FakeNode,
)

__all__ = [
    "FakeBlobscan",
    "FakeClock",
    "FakeCoinGecko",
    "FakeDefiLlama",
    "FakeEtherscan",
    "FakeGrowthepie",
    "FakeNode",
]
