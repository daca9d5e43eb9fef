"""
Default provider registry configuration.

Registers the built-in adapters with credentials and timeouts from
config.yaml / environment, and builds a ready Router.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..config import (
    failure_threshold,
    get_config,
    http_timeout_s,
    provider_settings,
    recovery_seconds,
)
from .explorer.etherscan import EtherscanExplorer
from .explorer.jsonrpc import JsonRpcNode
from .l2.blobscan import BlobscanClient
from .l2.growthepie import GrowthepieClient
from .market.coingecko import CoinGeckoClient
from .market.defillama import DefiLlamaClient
from .registry import ProviderRegistry
from .resilience import CircuitBreakerRegistry

logger = logging.getLogger(__name__)


def create_default_registry(config: Optional[Dict[str, Any]] = None) -> ProviderRegistry:
    """Create a registry with all built-in providers."""
    cfg = config if config is not None else get_config()
    timeout = http_timeout_s(cfg)
    etherscan = provider_settings("etherscan", cfg)
    node = provider_settings("node", cfg)

    registry = ProviderRegistry()
    registry.register(
        "etherscan",
        lambda: EtherscanExplorer(
            api_key=etherscan.get("api_key") or "",
            default_chain=str(etherscan.get("default_chain") or "1"),
            timeout_s=timeout,
        ),
    )
    registry.register(
        "defillama",
        lambda: DefiLlamaClient(
            api_key=provider_settings("defillama", cfg).get("api_key") or "", timeout_s=timeout
        ),
    )
    registry.register(
        "coingecko",
        lambda: CoinGeckoClient(
            api_key=provider_settings("coingecko", cfg).get("api_key") or "", timeout_s=timeout
        ),
    )
    registry.register("growthepie", lambda: GrowthepieClient(timeout_s=timeout))
    registry.register("blobscan", lambda: BlobscanClient(timeout_s=timeout))
    # the node keeps its own, longer timeout
    registry.register("node", lambda: JsonRpcNode(url=node.get("url") or ""))
    return registry


def create_breakers(config: Optional[Dict[str, Any]] = None) -> CircuitBreakerRegistry:
    cfg = config if config is not None else get_config()
    return CircuitBreakerRegistry(
        failure_threshold=failure_threshold(cfg),
        recovery_seconds=recovery_seconds(cfg),
    )


def create_router(config: Optional[Dict[str, Any]] = None):
    """Router over the default registry, with breaker tuning from config."""
    from ..router import Router

    cfg = config if config is not None else get_config()
    return Router(registry=create_default_registry(cfg), breakers=create_breakers(cfg))
