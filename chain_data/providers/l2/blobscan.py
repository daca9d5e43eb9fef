"""
Blobscan EIP-4844 blob explorer (free, no key).

  GET https://api.blobscan.com/blobs?ps=100&sort=desc
  GET https://api.blobscan.com/blocks/latest

The /stats endpoints are gone upstream; stats are derived from the most
recent page of blobs.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...core.errors import ProviderError
from ..base import BlobscanBlobStats
from ..http import HTTP_TIMEOUT_S, HttpJsonClient
from ..resilience import TTL_PRICE, RateLimiter, TTLCache

BLOBSCAN_BASE_URL = "https://api.blobscan.com"

# Upstream allows ~60/min
REQUESTS_PER_MINUTE = 50
MAX_PAGE_SIZE = 100


class BlobscanClient:
    """Recent blobs, single blobs by versioned hash, and the latest block."""

    def __init__(
        self,
        timeout_s: float = HTTP_TIMEOUT_S,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._http = HttpJsonClient(
            self.provider_name,
            BLOBSCAN_BASE_URL,
            timeout_s=timeout_s,
            rate_limiter=rate_limiter or RateLimiter(REQUESTS_PER_MINUTE, 60.0),
        )
        self._cache = cache or TTLCache()

    @property
    def provider_name(self) -> str:
        return "blobscan"

    def get_recent_blobs(self, limit: int = MAX_PAGE_SIZE) -> List[Dict[str, Any]]:
        size = max(1, min(limit, MAX_PAGE_SIZE))
        data = self._cache.get_or_fetch(
            f"blobscan:recent:{size}",
            TTL_PRICE,
            lambda: self._http.get_json("/blobs", {"ps": size, "sort": "desc"}),
        )
        if isinstance(data, dict):
            blobs = data.get("blobs")
            if isinstance(blobs, list):
                return blobs
            raise ProviderError(self.provider_name, "Blobscan /blobs response has no blobs list")
        if isinstance(data, list):
            return data
        raise ProviderError(self.provider_name, f"Unexpected Blobscan response type: {type(data)}")

    def get_blob_stats(self) -> BlobscanBlobStats:
        blobs = self.get_recent_blobs(MAX_PAGE_SIZE)
        total = sum(int(b.get("size") or 0) for b in blobs if isinstance(b, dict))
        return BlobscanBlobStats(
            recent_blob_count=len(blobs),
            avg_blob_size=round(total / len(blobs)) if blobs else 0,
            total_recent_size=total,
        )

    def probe(self) -> Any:
        return self._http.get_json("/blocks/latest")
