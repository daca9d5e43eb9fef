"""
Smart routing over redundant data providers.

Each routed operation builds an ordered list of provider attempts, runs it
through the FallbackExecutor (circuit breakers, validation, stop on first
success) and returns a normalized result tagged with the serving source
and how many fallbacks were needed.

Provider orderings:
- ETH price:    etherscan (if keyed) -> coingecko -> defillama
- token price:  by name      coingecko -> defillama
                by contract  defillama -> coingecko
- L2 TVL:       growthepie -> defillama
- protocol TVL: defillama
- blob stats:   blobscan -> growthepie
- on-chain:     node (if configured and on the requested chain) -> etherscan (if keyed)

Health checks and source comparisons call providers directly and in
parallel, without fallback or breaker bookkeeping.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .core.errors import ConfigurationError, ProviderError
from .providers.base import (
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
from .providers.chain import FallbackExecutor, FallbackOutcome, ProviderAttempt
from .providers.explorer.etherscan import resolve_chain_id
from .providers.market.coingecko import platform_for_chain
from .providers.market.defillama import coin_key_for_contract, coin_key_for_symbol
from .providers.normalize import (
    blob_stats_from_blobscan,
    blob_stats_from_growthepie,
    price_from_coingecko,
    price_from_defillama,
    price_from_etherscan,
    tvl_from_defillama_chain,
    tvl_from_growthepie,
    tvl_from_protocol,
    valid_blob_stats,
    valid_price,
    valid_tvl,
)
from .providers.registry import ProviderRegistry
from .providers.resilience import CircuitBreakerRegistry
from .providers.validation import (
    BlockTag,
    is_contract_address,
    validate_address,
    validate_addresses,
    validate_block_tag,
    validate_hex,
    validate_log_range,
)

logger = logging.getLogger(__name__)

HEALTH_CHECK_ORDER = ["etherscan", "defillama", "coingecko", "growthepie", "blobscan", "node"]
ETH_PRICE_SOURCES = ["etherscan", "coingecko", "defillama"]
ETH_PRICE_QUERY = "ETH Price (USD)"

NO_ONCHAIN_PROVIDER_MESSAGE = "No on-chain data provider is configured for this request."
NO_ONCHAIN_PROVIDER_HINT = (
    "Set ETH_NODE_URL (or providers.node.url) to use a self-hosted node on this chain, "
    "or set ETHERSCAN_API_KEY to use the Etherscan API."
)


def _timed(fn: Callable[[], Any]) -> Tuple[Any, int, Optional[str]]:
    """Run fn, returning (value, latency in ms, error message or None)."""
    start = time.perf_counter()
    try:
        value = fn()
    except Exception as exc:
        return None, int((time.perf_counter() - start) * 1000), str(exc) or type(exc).__name__
    return value, int((time.perf_counter() - start) * 1000), None


def _variance_pct(values: Sequence[float]) -> Optional[float]:
    """Spread of the readings as a percentage of their mean."""
    if not values:
        return None
    mean = sum(values) / len(values)
    if mean == 0:
        return None
    return round((max(values) - min(values)) / mean * 100, 2)


class Router:
    """
    Public entry point for routed queries.

    One Router owns one CircuitBreakerRegistry; breaker state for a
    provider is shared by every operation that lists it.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        breakers: Optional[CircuitBreakerRegistry] = None,
        executor: Optional[FallbackExecutor] = None,
    ) -> None:
        self.registry = registry
        self.executor = executor or FallbackExecutor(breakers)
        self.breakers = self.executor.breakers

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _configured(self, name: str) -> Optional[Any]:
        if not self.registry.is_configured(name):
            return None
        return self.registry.get(name)

    def _attempt(self, name: str, call: Callable[[Any], Any]) -> Optional[ProviderAttempt]:
        """Attempt bound to a registered provider, or None if it is not registered."""
        if not self.registry.has(name):
            return None
        return ProviderAttempt(name=name, invoke=lambda: call(self.registry.get(name)))

    def _execute(
        self,
        attempts: Sequence[Optional[ProviderAttempt]],
        validate: Optional[Callable[[Any], bool]] = None,
        what: str = "this query",
    ) -> FallbackOutcome:
        usable = [a for a in attempts if a is not None]
        if not usable:
            raise ConfigurationError(f"No provider registered for {what}.")
        return self.executor.execute(usable, validate)

    @staticmethod
    def _price_result(outcome: FallbackOutcome) -> PriceResult:
        price: NormalizedPrice = outcome.value
        return PriceResult(
            price=price.price,
            currency=price.currency,
            source=outcome.source_name,
            fallbacks_used=outcome.fallback_index,
            change_24h_pct=price.change_24h_pct,
            market_cap_usd=price.market_cap_usd,
        )

    @staticmethod
    def _tvl_result(outcome: FallbackOutcome) -> TvlResult:
        tvl: NormalizedTvl = outcome.value
        return TvlResult(
            tvl_usd=tvl.tvl_usd,
            source=outcome.source_name,
            fallbacks_used=outcome.fallback_index,
            breakdown=tvl.breakdown,
        )

    # ------------------------------------------------------------------
    # prices
    # ------------------------------------------------------------------

    def get_eth_price(self) -> PriceResult:
        attempts = []
        if self.registry.is_configured("etherscan"):
            attempts.append(self._attempt("etherscan", lambda p: price_from_etherscan(p.get_eth_price())))
        attempts.append(self._attempt("coingecko", lambda p: price_from_coingecko(p.get_price("ethereum"))))
        attempts.append(
            self._attempt("defillama", lambda p: price_from_defillama(p.get_coin_price("coingecko:ethereum")))
        )
        return self._price_result(self._execute(attempts, valid_price, "ETH price"))

    def get_token_price(self, token: str, chain: str = "ethereum") -> PriceResult:
        """Price by coin name/symbol, or by contract address on `chain`."""
        if is_contract_address(token):
            attempts = [
                self._attempt(
                    "defillama",
                    lambda p: price_from_defillama(p.get_coin_price(coin_key_for_contract(chain, token))),
                ),
                self._attempt(
                    "coingecko",
                    lambda p: price_from_coingecko(
                        p.get_token_price_by_contract(platform_for_chain(chain), token)
                    ),
                ),
            ]
        else:
            attempts = [
                self._attempt("coingecko", lambda p: price_from_coingecko(p.get_price(token.lower()))),
                self._attempt(
                    "defillama",
                    lambda p: price_from_defillama(p.get_coin_price(coin_key_for_symbol(token))),
                ),
            ]
        return self._price_result(self._execute(attempts, valid_price, f"{token} price"))

    # ------------------------------------------------------------------
    # TVL and blobs
    # ------------------------------------------------------------------

    def get_l2_tvl(self, chain: str) -> TvlResult:
        key = chain.lower()

        def via_growthepie(provider: Any) -> NormalizedTvl:
            metrics = provider.get_l2_chain(key)
            if metrics is None:
                raise ProviderError("growthepie", f"Chain '{chain}' not found in growthepie")
            return tvl_from_growthepie(metrics)

        def via_defillama(provider: Any) -> NormalizedTvl:
            for entry in provider.get_chains():
                if entry.name.lower() == key:
                    return tvl_from_defillama_chain(entry)
            raise ProviderError("defillama", f"Chain '{chain}' not found in DefiLlama")

        attempts = [self._attempt("growthepie", via_growthepie), self._attempt("defillama", via_defillama)]
        return self._tvl_result(self._execute(attempts, valid_tvl, f"{chain} TVL"))

    def get_protocol_tvl(self, protocol: str) -> TvlResult:
        attempts = [self._attempt("defillama", lambda p: tvl_from_protocol(p.get_protocol_tvl(protocol)))]
        return self._tvl_result(self._execute(attempts, valid_tvl, f"{protocol} TVL"))

    def get_blob_stats(self) -> BlobStatsResult:
        attempts = [
            self._attempt("blobscan", lambda p: blob_stats_from_blobscan(p.get_blob_stats())),
            self._attempt("growthepie", lambda p: blob_stats_from_growthepie(p.get_blob_data())),
        ]
        outcome = self._execute(attempts, valid_blob_stats, "blob stats")
        stats: NormalizedBlobStats = outcome.value
        return BlobStatsResult(
            recent_blob_count=stats.recent_blob_count,
            average_blob_size_bytes=stats.average_blob_size_bytes,
            source=outcome.source_name,
            fallbacks_used=outcome.fallback_index,
        )

    # ------------------------------------------------------------------
    # on-chain primitives
    # ------------------------------------------------------------------

    def _node_serves(self, node: Any, chain_id: Optional[str]) -> bool:
        if chain_id is None:
            return True
        node_chain = getattr(node, "chain_id", None)
        if node_chain is None and hasattr(node, "discover_chain_id"):
            node_chain = node.discover_chain_id()
        if node_chain is None:
            logger.debug("Skipping node for chain %s: node chain id unknown", chain_id)
            return False
        if str(node_chain) != chain_id:
            logger.debug("Skipping node for chain %s: node is on chain %s", chain_id, node_chain)
            return False
        return True

    def _route_onchain(
        self,
        chain: Optional[str],
        via_node: Callable[[Any], Any],
        via_explorer: Callable[[Any], Any],
    ) -> RoutedResult:
        # unknown chain names are caller errors, not provider failures
        chain_id = resolve_chain_id(chain) if chain else None
        attempts = []
        node = self._configured("node")
        if node is not None and self._node_serves(node, chain_id):
            attempts.append(ProviderAttempt(name="node", invoke=lambda: via_node(node)))
        explorer = self._configured("etherscan")
        if explorer is not None:
            attempts.append(ProviderAttempt(name="etherscan", invoke=lambda: via_explorer(explorer)))
        if not attempts:
            raise ConfigurationError(NO_ONCHAIN_PROVIDER_MESSAGE, NO_ONCHAIN_PROVIDER_HINT)
        outcome = self.executor.execute(attempts)
        return RoutedResult(value=outcome.value, source=outcome.source_name, fallbacks_used=outcome.fallback_index)

    def get_balance(self, address: str, chain: Optional[str] = None) -> RoutedResult:
        """Native balance in ETH (string, 6 decimals)."""
        validate_address(address)
        return self._route_onchain(
            chain,
            lambda n: n.get_balance(address),
            lambda e: e.get_balance(address, chain=chain),
        )

    def get_balance_multi(self, addresses: Sequence[str], chain: Optional[str] = None) -> RoutedResult:
        checked = validate_addresses(addresses)
        return self._route_onchain(
            chain,
            lambda n: n.get_balance_multi(checked),
            lambda e: e.get_balance_multi(checked, chain=chain),
        )

    def get_block(self, tag: BlockTag = "latest", full_tx: bool = False, chain: Optional[str] = None) -> RoutedResult:
        validate_block_tag(tag)
        return self._route_onchain(
            chain,
            lambda n: n.get_block(tag, full_tx),
            lambda e: e.get_block(tag, full_tx, chain=chain),
        )

    def get_transaction(self, txhash: str, chain: Optional[str] = None) -> RoutedResult:
        validate_hex(txhash, "transaction hash")
        return self._route_onchain(
            chain,
            lambda n: n.get_transaction(txhash),
            lambda e: e.get_transaction(txhash, chain=chain),
        )

    def get_transaction_receipt(self, txhash: str, chain: Optional[str] = None) -> RoutedResult:
        validate_hex(txhash, "transaction hash")
        return self._route_onchain(
            chain,
            lambda n: n.get_transaction_receipt(txhash),
            lambda e: e.get_transaction_receipt(txhash, chain=chain),
        )

    def eth_call(self, to: str, data: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> RoutedResult:
        validate_address(to)
        validate_hex(data, "call data")
        validate_block_tag(tag)
        return self._route_onchain(
            chain,
            lambda n: n.eth_call(to, data, tag),
            lambda e: e.eth_call(to, data, tag, chain=chain),
        )

    def get_code(self, address: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> RoutedResult:
        validate_address(address)
        validate_block_tag(tag)
        return self._route_onchain(
            chain,
            lambda n: n.get_code(address, tag),
            lambda e: e.get_code(address, tag, chain=chain),
        )

    def get_storage_at(
        self, address: str, position: str, tag: BlockTag = "latest", chain: Optional[str] = None
    ) -> RoutedResult:
        validate_address(address)
        validate_hex(position, "storage position")
        validate_block_tag(tag)
        return self._route_onchain(
            chain,
            lambda n: n.get_storage_at(address, position, tag),
            lambda e: e.get_storage_at(address, position, tag, chain=chain),
        )

    def get_transaction_count(self, address: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> RoutedResult:
        validate_address(address)
        validate_block_tag(tag)
        return self._route_onchain(
            chain,
            lambda n: n.get_transaction_count(address, tag),
            lambda e: e.get_transaction_count(address, tag, chain=chain),
        )

    def get_gas_price(self, chain: Optional[str] = None) -> RoutedResult:
        """Gas oracle shape: SafeGasPrice / ProposeGasPrice / FastGasPrice in gwei."""
        return self._route_onchain(
            chain,
            lambda n: n.get_gas_price(),
            lambda e: e.get_gas_price(chain=chain),
        )

    def get_logs(
        self,
        address: str,
        from_block: BlockTag = 0,
        to_block: BlockTag = "latest",
        topics: Sequence[Optional[str]] = (),
        chain: Optional[str] = None,
    ) -> RoutedResult:
        validate_address(address)
        validate_log_range(from_block, to_block)
        return self._route_onchain(
            chain,
            lambda n: n.get_logs(address, from_block, to_block, topics),
            lambda e: e.get_logs(address, from_block, to_block, topics, chain=chain),
        )

    def connect_node(self, url: str) -> str:
        """Point the self-hosted node at `url`; returns its chain id."""
        if not self.registry.has("node"):
            raise ConfigurationError("No node provider registered.")
        chain_id = self.registry.get("node").connect(url)
        self.breakers.reset("node")
        return chain_id

    # ------------------------------------------------------------------
    # diagnostics
    # ------------------------------------------------------------------

    def check_health(self) -> List[HealthStatus]:
        """Probe every configured provider in parallel, bypassing circuit breakers."""
        probes = [
            (name, self.registry.get(name))
            for name in HEALTH_CHECK_ORDER
            if self.registry.is_configured(name)
        ]
        if not probes:
            return []
        with ThreadPoolExecutor(max_workers=len(probes), thread_name_prefix="health") as pool:
            futures = [pool.submit(_timed, provider.probe) for _, provider in probes]
            results = [f.result() for f in futures]

        statuses = []
        for (name, _), (_, latency_ms, error) in zip(probes, results):
            if error is not None:
                logger.warning("Health probe failed for %s: %s", name, error)
            statuses.append(HealthStatus(source=name, healthy=error is None, latency_ms=latency_ms, error=error))
        return statuses

    def compare_eth_price(self) -> SourceComparison:
        """Ask every ETH-price source at once and report how far they disagree."""
        calls: Dict[str, Callable[[Any], NormalizedPrice]] = {
            "etherscan": lambda p: price_from_etherscan(p.get_eth_price()),
            "coingecko": lambda p: price_from_coingecko(p.get_price("ethereum")),
            "defillama": lambda p: price_from_defillama(p.get_coin_price("coingecko:ethereum")),
        }
        sources = [name for name in ETH_PRICE_SOURCES if self.registry.has(name)]
        if not sources:
            return SourceComparison(query=ETH_PRICE_QUERY, results=[], max_variance_pct=None)

        def read(name: str) -> Callable[[], float]:
            return lambda: calls[name](self.registry.get(name)).price

        with ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="compare") as pool:
            futures = [pool.submit(_timed, read(name)) for name in sources]
            results = [f.result() for f in futures]

        readings = [
            SourceReading(source=name, value=value, latency_ms=latency_ms, error=error)
            for name, (value, latency_ms, error) in zip(sources, results)
        ]
        values = [r.value for r in readings if r.value is not None]
        return SourceComparison(
            query=ETH_PRICE_QUERY,
            results=readings,
            max_variance_pct=_variance_pct(values),
        )

    def get_circuit_status(self) -> Dict[str, Dict[str, Any]]:
        return self.breakers.snapshot()
