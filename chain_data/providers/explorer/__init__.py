"""On-chain data sources: the Etherscan block explorer and a self-hosted JSON-RPC node."""
from __future__ import annotations

from .etherscan import SUPPORTED_CHAINS, EtherscanExplorer, resolve_chain_id
from .jsonrpc import JsonRpcNode, redact_url

__all__ = ["EtherscanExplorer", "JsonRpcNode", "SUPPORTED_CHAINS", "redact_url", "resolve_chain_id"]
