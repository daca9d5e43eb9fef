"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import chain_data; build a router with
chain_data.create_router() and call its routed operations.
Does not import cli.
"""

from __future__ import annotations

from . import config, core, providers
from ._version import __version__
from .providers.defaults import create_default_registry, create_router
from .router import Router

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "Router",
    "config",
    "core",
    "create_default_registry",
    "create_router",
    "providers",
]
