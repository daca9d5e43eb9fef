"""
Provider registry: central catalog of available providers.

Adapters are registered under their provider name, either as a ready
instance or as a zero-argument factory that is called on first lookup.
The router resolves every provider through here, so tests can swap in
fakes by registering them under the real names.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Union

from .base import is_configured

logger = logging.getLogger(__name__)

ProviderFactory = Union[Callable[[], Any], Any]


class ProviderRegistry:
    """
    Mapping of provider names to factories/instances.

    Usage:
        registry = ProviderRegistry()
        registry.register("coingecko", CoinGeckoClient)
        registry.register("node", JsonRpcNode(url="http://localhost:8545"))

        registry.get("coingecko").get_price("ethereum")
    """

    def __init__(self) -> None:
        self._factories: Dict[str, ProviderFactory] = {}
        self._instances: Dict[str, Any] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Register a provider class, factory or instance by name (replaces any previous one)."""
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Registered provider: %s", name)

    def get(self, name: str) -> Any:
        """Get or instantiate a provider by name."""
        if name not in self._instances:
            factory = self._factories.get(name)
            if factory is None:
                raise KeyError(
                    f"Unknown provider '{name}'. "
                    f"Available: {list(self._factories)}"
                )
            if isinstance(factory, type):
                self._instances[name] = factory()
            elif callable(factory) and not hasattr(factory, "provider_name"):
                self._instances[name] = factory()
            else:
                self._instances[name] = factory
        return self._instances[name]

    def has(self, name: str) -> bool:
        return name in self._factories

    def is_configured(self, name: str) -> bool:
        """Registered and, if the provider needs credentials, configured."""
        return self.has(name) and is_configured(self.get(name))

    @property
    def names(self) -> List[str]:
        return list(self._factories)
