"""
Top-level CLI dispatcher: chain-data <command> [args...].
Prints each result as JSON. Exit: 0 ok, 1 provider/input failure, 2 configuration error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from chain_data.core.errors import ChainDataError, ConfigurationError

logger = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    if hasattr(payload, "as_dict"):
        payload = payload.as_dict()
    elif isinstance(payload, list):
        payload = [p.as_dict() if hasattr(p, "as_dict") else p for p in payload]
    print(json.dumps(payload, indent=2, default=str))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chain-data",
        description="Routed blockchain and DeFi data with provider fallback",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    subparsers = parser.add_subparsers(dest="command", help="command")

    subparsers.add_parser("health", help="Probe every configured provider")
    p = subparsers.add_parser("price", help="Token price (default: ETH)")
    p.add_argument("token", nargs="?", default=None, help="Coin id, symbol or contract address")
    p.add_argument("--chain", default="ethereum", help="Chain for contract addresses")
    p = subparsers.add_parser("tvl", help="L2 chain TVL")
    p.add_argument("chain")
    p = subparsers.add_parser("protocol-tvl", help="Protocol TVL")
    p.add_argument("protocol")
    subparsers.add_parser("blobs", help="Recent blob statistics")
    p = subparsers.add_parser("balance", help="Native balance of an address")
    p.add_argument("address")
    p.add_argument("--chain", default=None)
    p = subparsers.add_parser("gas", help="Gas oracle")
    p.add_argument("--chain", default=None)
    subparsers.add_parser("compare", help="ETH price from every source")
    subparsers.add_parser("circuits", help="Circuit breaker snapshot")
    return parser


def _dispatch(router: Any, args: argparse.Namespace) -> Any:
    cmd = args.command
    if cmd == "health":
        return router.check_health()
    if cmd == "price":
        if args.token is None or args.token.lower() in ("eth", "ethereum"):
            return router.get_eth_price()
        return router.get_token_price(args.token, chain=args.chain)
    if cmd == "tvl":
        return router.get_l2_tvl(args.chain)
    if cmd == "protocol-tvl":
        return router.get_protocol_tvl(args.protocol)
    if cmd == "blobs":
        return router.get_blob_stats()
    if cmd == "balance":
        return router.get_balance(args.address, chain=args.chain)
    if cmd == "gas":
        return router.get_gas_price(chain=args.chain)
    if cmd == "compare":
        return router.compare_eth_price()
    if cmd == "circuits":
        return router.get_circuit_status()
    raise ValueError(f"Unknown command: {cmd}")


def main(argv: Optional[List[str]] = None, router: Any = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if router is None:
            from pathlib import Path

            from chain_data.config import get_config
            from chain_data.providers.defaults import create_router

            router = create_router(get_config(Path(args.config) if args.config else None))
        result = _dispatch(router, args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except ChainDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _emit(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
