"""L2 and blobspace sources: growthepie fundamentals and Blobscan."""
from __future__ import annotations

from .blobscan import BlobscanClient
from .growthepie import GrowthepieClient

__all__ = ["BlobscanClient", "GrowthepieClient"]
