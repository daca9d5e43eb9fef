"""
Self-hosted Ethereum JSON-RPC node (geth, erigon, reth, ...).

Optional: configured with ETH_NODE_URL or `providers.node.url`. Serves the
same on-chain primitives as the block explorer, over JSON-RPC 2.0 POSTs.
"""
from __future__ import annotations

import itertools
import logging
import re
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ...core.errors import ConfigurationError, ProviderError
from ..http import HttpJsonClient
from ..resilience import TTL_GAS, TTL_PRICE, TTL_STATIC, TTL_TVL, TTLCache
from ..validation import (
    NAMED_BLOCK_TAGS,
    BlockTag,
    block_tag_to_hex,
    hex_to_gwei,
    validate_address,
    validate_addresses,
    validate_block_tag,
    validate_hex,
    validate_log_range,
    wei_to_eth,
)

logger = logging.getLogger(__name__)

NODE_TIMEOUT_S = 30.0

_KEY_SEGMENT_RE = re.compile(r"^[a-fA-F0-9]{32,}$")

MISSING_URL_MESSAGE = "Ethereum node URL not configured."
MISSING_URL_HINT = "Set ETH_NODE_URL or providers.node.url in config.yaml."


def redact_url(url: str) -> str:
    """Hide credentials and key-like path segments (Infura/Alchemy style)."""
    if not url:
        return ""
    parts = urlsplit(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    if parts.username or parts.password:
        netloc = f"***:***@{netloc}"
    path = "/".join(
        "***" if _KEY_SEGMENT_RE.match(seg) else seg for seg in parts.path.split("/")
    )
    return urlunsplit((parts.scheme, netloc, path, "", ""))


class JsonRpcNode:
    """JSON-RPC 2.0 client with chain-id discovery."""

    def __init__(
        self,
        url: str = "",
        chain_id: Optional[str] = None,
        timeout_s: float = NODE_TIMEOUT_S,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.url = url
        # decimal string once known, e.g. "1"; None until discovered
        self.chain_id = chain_id
        self.timeout_s = timeout_s
        self._cache = cache or TTLCache()
        self._ids = itertools.count(1)

    @property
    def provider_name(self) -> str:
        return "node"

    def is_configured(self) -> bool:
        return bool(self.url)

    @property
    def display_url(self) -> str:
        return redact_url(self.url)

    def _client(self) -> HttpJsonClient:
        if not self.url:
            raise ConfigurationError(MISSING_URL_MESSAGE, MISSING_URL_HINT)
        return HttpJsonClient(
            self.provider_name, self.url, timeout_s=self.timeout_s, secrets=[self.url]
        )

    def _error(self, message: str) -> ProviderError:
        return ProviderError(self.provider_name, f"{message} ({self.display_url})")

    def rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        data = self._client().post_json("", payload)
        if not isinstance(data, dict):
            raise self._error(f"Unexpected JSON-RPC response for {method}")
        if data.get("error"):
            err = data["error"]
            detail = err.get("message", err) if isinstance(err, dict) else err
            raise self._error(f"RPC error from {method}: {detail}")
        return data.get("result")

    def _cached(self, key: str, ttl: float, method: str, params: List[Any]) -> Any:
        return self._cache.get_or_fetch(
            f"node:{self.url}:{key}", ttl, lambda: self.rpc(method, params)
        )

    def connect(self, url: str) -> str:
        """
        Point the node at `url`, discover its chain id and check it answers.

        On failure the previous url and chain id are restored and the error
        propagates. Returns the discovered chain id.
        """
        previous = (self.url, self.chain_id)
        self.url, self.chain_id = url, None
        try:
            chain_hex = self.rpc("eth_chainId")
            self.rpc("eth_blockNumber")
            self.chain_id = str(int(chain_hex, 16))
        except Exception:
            self.url, self.chain_id = previous
            raise
        self._cache.clear()
        logger.info("Connected to node %s (chain %s)", self.display_url, self.chain_id)
        return self.chain_id

    def discover_chain_id(self) -> Optional[str]:
        """Best-effort eth_chainId lookup; None when the node does not answer."""
        if self.chain_id is None and self.url:
            try:
                self.chain_id = str(int(self.rpc("eth_chainId"), 16))
            except (ProviderError, TypeError, ValueError) as exc:
                logger.warning("Could not read chain id from %s: %s", self.display_url, exc)
        return self.chain_id

    # === reads ===

    def get_block_number(self) -> int:
        return int(self._cached("blocknumber", TTL_GAS, "eth_blockNumber", []), 16)

    def probe(self) -> int:
        return int(self.rpc("eth_blockNumber"), 16)

    def get_balance(self, address: str) -> str:
        validate_address(address)
        return wei_to_eth(
            self._cached(f"balance:{address}", TTL_PRICE, "eth_getBalance", [address, "latest"])
        )

    def get_balance_multi(self, addresses: Sequence[str]) -> List[Dict[str, str]]:
        """One batch request; per-address calls if the node rejects batches."""
        checked = validate_addresses(addresses)
        batch = [
            {"jsonrpc": "2.0", "id": i, "method": "eth_getBalance", "params": [addr, "latest"]}
            for i, addr in enumerate(checked)
        ]
        try:
            data = self._client().post_json("", batch)
        except ProviderError as exc:
            logger.debug("Batch eth_getBalance failed, falling back: %s", exc)
            data = None
        if isinstance(data, list) and len(data) == len(checked):
            by_id = {item.get("id"): item for item in data if isinstance(item, dict)}
            if all(i in by_id and by_id[i].get("result") is not None for i in range(len(checked))):
                return [
                    {"account": addr, "balance": wei_to_eth(by_id[i]["result"])}
                    for i, addr in enumerate(checked)
                ]
        return [{"account": addr, "balance": self.get_balance(addr)} for addr in checked]

    def get_block(self, tag: BlockTag = "latest", full_tx: bool = False) -> Any:
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        ttl = TTL_GAS if hex_tag in NAMED_BLOCK_TAGS else TTL_STATIC
        return self._cached(f"block:{hex_tag}:{full_tx}", ttl, "eth_getBlockByNumber", [hex_tag, full_tx])

    def get_transaction(self, txhash: str) -> Any:
        validate_hex(txhash, "transaction hash")
        return self._cached(f"tx:{txhash}", TTL_STATIC, "eth_getTransactionByHash", [txhash])

    def get_transaction_receipt(self, txhash: str) -> Any:
        validate_hex(txhash, "transaction hash")
        return self._cached(f"receipt:{txhash}", TTL_STATIC, "eth_getTransactionReceipt", [txhash])

    def eth_call(self, to: str, data: str, tag: BlockTag = "latest") -> str:
        validate_address(to)
        validate_hex(data, "call data")
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        return self._cached(
            f"ethcall:{to}:{data}:{hex_tag}", TTL_GAS, "eth_call", [{"to": to, "data": data}, hex_tag]
        )

    def get_code(self, address: str, tag: BlockTag = "latest") -> str:
        validate_address(address)
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        return self._cached(f"code:{address}:{hex_tag}", TTL_STATIC, "eth_getCode", [address, hex_tag])

    def get_storage_at(self, address: str, position: str, tag: BlockTag = "latest") -> str:
        validate_address(address)
        validate_hex(position, "storage position")
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        return self._cached(
            f"storage:{address}:{position}:{hex_tag}",
            TTL_GAS,
            "eth_getStorageAt",
            [address, position, hex_tag],
        )

    def get_transaction_count(self, address: str, tag: BlockTag = "latest") -> int:
        validate_address(address)
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        result = self._cached(
            f"txcount:{address}:{hex_tag}", TTL_GAS, "eth_getTransactionCount", [address, hex_tag]
        )
        return int(result, 16)

    def get_gas_price(self) -> Dict[str, Any]:
        """eth_gasPrice in the explorer's gas-oracle shape (gwei strings)."""
        gwei = hex_to_gwei(self._cached("gasprice", TTL_GAS, "eth_gasPrice", []))
        return {"SafeGasPrice": gwei, "ProposeGasPrice": gwei, "FastGasPrice": gwei}

    def get_logs(
        self,
        address: str,
        from_block: BlockTag = 0,
        to_block: BlockTag = "latest",
        topics: Sequence[Optional[str]] = (),
    ) -> List[Dict[str, Any]]:
        validate_address(address)
        validate_log_range(from_block, to_block)
        checked_topics = [validate_hex(t, f"topic{i}") if t else None for i, t in enumerate(topics[:4])]
        log_filter: Dict[str, Any] = {
            "address": address,
            "fromBlock": block_tag_to_hex(from_block),
            "toBlock": block_tag_to_hex(to_block),
        }
        if any(checked_topics):
            log_filter["topics"] = checked_topics
        key = f"logs:{address}:{from_block}:{to_block}:{','.join(t or '' for t in topics)}"
        result = self._cached(key, TTL_TVL, "eth_getLogs", [log_filter])
        return result if isinstance(result, list) else []
