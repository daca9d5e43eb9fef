"""
Shared exception types for chain_data.

Every error the package raises derives from ChainDataError so callers can
catch one type. Routed operations surface either a ConfigurationError (no
usable provider is configured) or an AllProvidersFailedError (every
provider was tried and failed); per-provider errors stay inside the
fallback loop.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple


class ChainDataError(Exception):
    """Base exception for chain_data; catch this for any package-raised error."""

    pass


class ConfigurationError(ChainDataError):
    """A required credential or endpoint is missing. Never retried."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        full = f"{message} {hint}" if hint else message
        super().__init__(full)
        self.hint = hint


class ProviderError(ChainDataError, RuntimeError):
    """A single upstream call failed (network, non-2xx, error payload)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ValidationFailedError(ChainDataError):
    """An upstream answered, but the answer is not acceptable."""

    pass


class InvalidInputError(ChainDataError, ValueError):
    """Malformed caller input: address, hash, hex data or block tag."""

    pass


class AllProvidersFailedError(ChainDataError, RuntimeError):
    """Every provider in a fallback list failed or was skipped."""

    def __init__(self, errors: Sequence[Tuple[str, str]]) -> None:
        self.errors: List[Tuple[str, str]] = list(errors)
        summary = "; ".join(f"{name}: {reason}" for name, reason in self.errors)
        super().__init__(f"All sources failed: {summary}")


__all__ = [
    "AllProvidersFailedError",
    "ChainDataError",
    "ConfigurationError",
    "InvalidInputError",
    "ProviderError",
    "ValidationFailedError",
]
