"""Allow python -m chain_data to print help."""
from __future__ import annotations

from . import __version__

_HELP = f"""\
chain-data {__version__}

Routed blockchain and DeFi data with provider fallback and circuit breakers.

Commands:
  chain-data health                 Probe every configured provider
  chain-data price [token]          Token price (default: ETH); --chain for contracts
  chain-data tvl <chain>            L2 TVL (growthepie -> DefiLlama)
  chain-data protocol-tvl <slug>    Protocol TVL (DefiLlama)
  chain-data blobs                  Recent blob stats (Blobscan -> growthepie)
  chain-data balance <address>      Native balance (node -> Etherscan)
  chain-data gas                    Gas oracle (node -> Etherscan)
  chain-data compare                ETH price from every source, with spread
  chain-data circuits               Circuit breaker snapshot

Configuration: config.yaml at repo root (or CHAIN_DATA_CONFIG), overridden by
ETHERSCAN_API_KEY, COINGECKO_API_KEY, DEFILLAMA_API_KEY, ETH_NODE_URL.
"""


def main() -> int:
    print(_HELP)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
