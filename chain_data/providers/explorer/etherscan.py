"""
Etherscan V2 block explorer (one key, 60+ chains via the chainid parameter).

  GET https://api.etherscan.io/v2/api?chainid={id}&module=...&action=...&apikey=...

Requires an API key (free at etherscan.io/apis).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ...core.errors import ConfigurationError, InvalidInputError, ProviderError
from ..base import EtherscanEthPrice
from ..http import HTTP_TIMEOUT_S, HttpJsonClient
from ..resilience import TTL_GAS, TTL_PRICE, TTL_STATIC, TTL_TVL, TTLCache
from ..validation import (
    NAMED_BLOCK_TAGS,
    BlockTag,
    block_tag_to_hex,
    redact,
    validate_address,
    validate_addresses,
    validate_block_tag,
    validate_hex,
    validate_log_range,
    wei_to_eth,
)

ETHERSCAN_BASE_URL = "https://api.etherscan.io/v2/api"

SUPPORTED_CHAINS: Dict[str, str] = {
    # Mainnets
    "ethereum": "1",
    "bnb": "56",
    "polygon": "137",
    "base": "8453",
    "arbitrum": "42161",
    "arbitrum-nova": "42170",
    "optimism": "10",
    "linea": "59144",
    "blast": "81457",
    "avalanche": "43114",
    "gnosis": "100",
    "celo": "42220",
    "mantle": "5000",
    "scroll": "534352",
    "taiko": "167000",
    "fantom": "250",
    "cronos": "25",
    "fraxtal": "252",
    "opbnb": "204",
    "world": "480",
    "sonic": "146",
    "unichain": "130",
    "abstract": "2741",
    "berachain": "80094",
    "sei": "1329",
    "apechain": "33139",
    # Testnets
    "sepolia": "11155111",
    "holesky": "17000",
    "base-sepolia": "84532",
    "arbitrum-sepolia": "421614",
    "optimism-sepolia": "11155420",
}

# status "0" with these messages is an empty result, not an error
_EMPTY_RESULT_MESSAGES = ("No transactions found", "No records found")

MISSING_KEY_MESSAGE = "Etherscan API key not configured."
MISSING_KEY_HINT = "Set ETHERSCAN_API_KEY (free at etherscan.io/apis)."


def resolve_chain_id(chain: Optional[str], default: str = "1") -> str:
    """Chain name or numeric id -> numeric id string."""
    if not chain:
        return default
    if chain.isdigit():
        return chain
    chain_id = SUPPORTED_CHAINS.get(chain.lower())
    if chain_id is None:
        raise InvalidInputError(
            f"Unknown chain: {chain}. Use a chain id or one of: {', '.join(SUPPORTED_CHAINS)}"
        )
    return chain_id


class EtherscanExplorer:
    """Block-explorer adapter: account, proxy, gas and stats modules."""

    def __init__(
        self,
        api_key: str = "",
        default_chain: str = "1",
        timeout_s: float = HTTP_TIMEOUT_S,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.api_key = api_key
        self.default_chain = default_chain
        self._http = HttpJsonClient(
            self.provider_name, ETHERSCAN_BASE_URL, timeout_s=timeout_s, secrets=[api_key]
        )
        self._cache = cache or TTLCache()

    @property
    def provider_name(self) -> str:
        return "etherscan"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def request(self, params: Dict[str, str], chain: Optional[str] = None) -> Any:
        if not self.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE, MISSING_KEY_HINT)
        query = {"chainid": resolve_chain_id(chain, self.default_chain), **params, "apikey": self.api_key}
        data = self._http.get_json("", params=query)
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, f"Unexpected Etherscan response type: {type(data)}")
        if data.get("status") == "0" and data.get("message") not in _EMPTY_RESULT_MESSAGES:
            detail = data.get("result") or data.get("message") or "Etherscan API error"
            raise ProviderError(self.provider_name, redact(f"Etherscan error: {detail}", [self.api_key]))
        if "error" in data and data.get("jsonrpc"):
            err = data["error"]
            detail = err.get("message") if isinstance(err, dict) else err
            raise ProviderError(self.provider_name, redact(f"Etherscan proxy error: {detail}", [self.api_key]))
        return data.get("result")

    def _cached(self, key: str, ttl: float, params: Dict[str, str], chain: Optional[str] = None) -> Any:
        chain_id = resolve_chain_id(chain, self.default_chain)
        return self._cache.get_or_fetch(
            f"etherscan:{chain_id}:{key}", ttl, lambda: self.request(params, chain)
        )

    # === stats ===

    def get_eth_price(self) -> EtherscanEthPrice:
        result = self._cached("ethprice", TTL_PRICE, {"module": "stats", "action": "ethprice"})
        if not isinstance(result, dict) or "ethusd" not in result:
            raise ProviderError(self.provider_name, "Etherscan ethprice response missing ethusd")
        btc = result.get("ethbtc")
        return EtherscanEthPrice(
            usd=float(result["ethusd"]),
            btc=float(btc) if btc not in (None, "") else None,
        )

    # === proxy (eth_*) ===

    def get_block_number(self, chain: Optional[str] = None) -> int:
        result = self._cached(
            "blocknumber", TTL_GAS, {"module": "proxy", "action": "eth_blockNumber"}, chain
        )
        return int(result, 16)

    def probe(self) -> int:
        return self.get_block_number()

    def get_block(self, tag: BlockTag = "latest", full_tx: bool = False, chain: Optional[str] = None) -> Any:
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        params = {
            "module": "proxy",
            "action": "eth_getBlockByNumber",
            "tag": hex_tag,
            "boolean": "true" if full_tx else "false",
        }
        # named tags move with the chain head
        ttl = TTL_GAS if hex_tag in NAMED_BLOCK_TAGS else TTL_STATIC
        return self._cached(f"block:{hex_tag}:{full_tx}", ttl, params, chain)

    def get_transaction(self, txhash: str, chain: Optional[str] = None) -> Any:
        validate_hex(txhash, "transaction hash")
        params = {"module": "proxy", "action": "eth_getTransactionByHash", "txhash": txhash}
        return self._cached(f"tx:{txhash}", TTL_STATIC, params, chain)

    def get_transaction_receipt(self, txhash: str, chain: Optional[str] = None) -> Any:
        validate_hex(txhash, "transaction hash")
        params = {"module": "proxy", "action": "eth_getTransactionReceipt", "txhash": txhash}
        return self._cached(f"receipt:{txhash}", TTL_STATIC, params, chain)

    def eth_call(self, to: str, data: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> str:
        validate_address(to)
        validate_hex(data, "call data")
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        params = {"module": "proxy", "action": "eth_call", "to": to, "data": data, "tag": hex_tag}
        return self._cached(f"ethcall:{to}:{data}:{hex_tag}", TTL_GAS, params, chain)

    def get_code(self, address: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> str:
        validate_address(address)
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        params = {"module": "proxy", "action": "eth_getCode", "address": address, "tag": hex_tag}
        return self._cached(f"code:{address}:{hex_tag}", TTL_STATIC, params, chain)

    def get_storage_at(
        self, address: str, position: str, tag: BlockTag = "latest", chain: Optional[str] = None
    ) -> str:
        validate_address(address)
        validate_hex(position, "storage position")
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        params = {
            "module": "proxy",
            "action": "eth_getStorageAt",
            "address": address,
            "position": position,
            "tag": hex_tag,
        }
        return self._cached(f"storage:{address}:{position}:{hex_tag}", TTL_GAS, params, chain)

    def get_transaction_count(self, address: str, tag: BlockTag = "latest", chain: Optional[str] = None) -> int:
        validate_address(address)
        hex_tag = block_tag_to_hex(validate_block_tag(tag))
        params = {
            "module": "proxy",
            "action": "eth_getTransactionCount",
            "address": address,
            "tag": hex_tag,
        }
        return int(self._cached(f"txcount:{address}:{hex_tag}", TTL_GAS, params, chain), 16)

    # === account ===

    def get_balance(self, address: str, chain: Optional[str] = None) -> str:
        validate_address(address)
        params = {"module": "account", "action": "balance", "address": address, "tag": "latest"}
        return wei_to_eth(self._cached(f"balance:{address}", TTL_PRICE, params, chain))

    def get_balance_multi(self, addresses: Sequence[str], chain: Optional[str] = None) -> List[Dict[str, str]]:
        checked = validate_addresses(addresses)
        joined = ",".join(checked)
        params = {"module": "account", "action": "balancemulti", "address": joined, "tag": "latest"}
        result = self._cached(f"balancemulti:{joined}", TTL_PRICE, params, chain)
        if not isinstance(result, list):
            return []
        return [{"account": item["account"], "balance": wei_to_eth(item["balance"])} for item in result]

    # === gas & logs ===

    def get_gas_price(self, chain: Optional[str] = None) -> Dict[str, Any]:
        return self._cached("gasoracle", TTL_GAS, {"module": "gastracker", "action": "gasoracle"}, chain)

    def get_logs(
        self,
        address: str,
        from_block: BlockTag = 0,
        to_block: BlockTag = "latest",
        topics: Sequence[Optional[str]] = (),
        chain: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        validate_address(address)
        validate_log_range(from_block, to_block)
        params = {
            "module": "logs",
            "action": "getLogs",
            "address": address,
            "fromBlock": str(from_block),
            "toBlock": str(to_block),
        }
        for i, topic in enumerate(topics[:4]):
            if topic:
                params[f"topic{i}"] = validate_hex(topic, f"topic{i}")
        key = f"logs:{address}:{from_block}:{to_block}:{','.join(t or '' for t in topics)}"
        result = self._cached(key, TTL_TVL, params, chain)
        return result if isinstance(result, list) else []
