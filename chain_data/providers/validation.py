"""
Input checks and unit conversions shared by the explorer and node adapters.
"""
from __future__ import annotations

import re
from decimal import Decimal
from typing import Iterable, List, Union

from ..core.errors import InvalidInputError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
HEX_QUANTITY_RE = re.compile(r"^0x[0-9a-fA-F]+$")
SECRET_HEX_RE = re.compile(r"[a-fA-F0-9]{32,}")

NAMED_BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")
MAX_LOG_BLOCK_RANGE = 10_000
MAX_MULTI_BALANCE = 20

WEI_PER_ETH = 10**18

BlockTag = Union[int, str]


def is_contract_address(token: str) -> bool:
    """Structural check only: 0x prefix and 42 characters."""
    return token.startswith("0x") and len(token) == 42


def validate_address(address: str) -> str:
    if not isinstance(address, str) or not ADDRESS_RE.match(address):
        raise InvalidInputError(
            f'Invalid address: expected 0x followed by 40 hex characters, got "{address}"'
        )
    return address


def validate_addresses(addresses: Iterable[str]) -> List[str]:
    checked = [validate_address(a) for a in addresses]
    if not checked:
        raise InvalidInputError("At least one address is required")
    if len(checked) > MAX_MULTI_BALANCE:
        raise InvalidInputError(
            f"Too many addresses: {len(checked)} (maximum {MAX_MULTI_BALANCE})"
        )
    return checked


def validate_hex(value: str, label: str) -> str:
    if not isinstance(value, str) or not HEX_RE.match(value):
        raise InvalidInputError(f'Invalid {label}: expected 0x-prefixed hex string, got "{value}"')
    return value


def validate_block_tag(tag: BlockTag) -> BlockTag:
    if isinstance(tag, bool):
        raise InvalidInputError(f"Invalid block number: {tag!r}")
    if isinstance(tag, int):
        if tag < 0:
            raise InvalidInputError(
                f"Invalid block number: expected non-negative integer, got {tag}"
            )
        return tag
    if tag in NAMED_BLOCK_TAGS or (isinstance(tag, str) and HEX_QUANTITY_RE.match(tag)):
        return tag
    raise InvalidInputError(
        "Invalid block tag: expected a number, hex string, or one of "
        f'{", ".join(NAMED_BLOCK_TAGS)}; got "{tag}"'
    )


def block_tag_to_hex(tag: BlockTag) -> str:
    return hex(tag) if isinstance(tag, int) else tag


def validate_log_range(from_block: BlockTag, to_block: BlockTag) -> None:
    validate_block_tag(from_block)
    validate_block_tag(to_block)
    if isinstance(from_block, int) and isinstance(to_block, int):
        span = to_block - from_block
        if span > MAX_LOG_BLOCK_RANGE:
            raise InvalidInputError(
                f"Block range too large: {span} blocks (from {from_block} to {to_block}). "
                f"Narrow the range to {MAX_LOG_BLOCK_RANGE:,} blocks or fewer."
            )


def wei_to_eth(wei: Union[int, str]) -> str:
    """Decimal wei (or 0x hex) to an ETH string truncated to 6 decimals."""
    if isinstance(wei, str):
        value = int(wei, 16) if wei.lower().startswith("0x") else int(wei)
    else:
        value = int(wei)
    whole, fraction = divmod(value, WEI_PER_ETH)
    return f"{whole}.{str(fraction).zfill(18)[:6]}"


def hex_to_gwei(value: str) -> str:
    return f"{Decimal(int(value, 16)) / Decimal(10**9):.2f}"


def redact(message: str, secrets: Iterable[str] = ()) -> str:
    """Strip known secrets and anything that looks like an API key."""
    for secret in secrets:
        if secret and len(secret) > 8:
            message = message.replace(secret, "[REDACTED]")
    return SECRET_HEX_RE.sub("[REDACTED]", message)
