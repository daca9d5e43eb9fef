"""
Stable facade: shared exception types. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    AllProvidersFailedError,
    ChainDataError,
    ConfigurationError,
    InvalidInputError,
    ProviderError,
    ValidationFailedError,
)

# Do not add exports without updating __all__.
__all__ = [
    "AllProvidersFailedError",
    "ChainDataError",
    "ConfigurationError",
    "InvalidInputError",
    "ProviderError",
    "ValidationFailedError",
]
