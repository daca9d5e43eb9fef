"""
JSON-over-HTTP transport shared by every adapter.

Each call carries an explicit timeout so one slow upstream cannot stall a
fallback chain. Failures surface as ProviderError with secrets redacted.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import requests

from ..core.errors import ProviderError
from .resilience import RateLimiter
from .validation import redact

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 15.0


class HttpJsonClient:
    """GET/POST returning decoded JSON, for one named provider."""

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        *,
        timeout_s: float = HTTP_TIMEOUT_S,
        headers: Optional[Dict[str, str]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        secrets: Iterable[str] = (),
    ) -> None:
        self.provider_name = provider_name
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.rate_limiter = rate_limiter
        self.secrets = list(secrets)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    def _fail(self, message: str, status_code: Optional[int] = None) -> ProviderError:
        return ProviderError(self.provider_name, redact(message, self.secrets), status_code)

    def _decode(self, resp: requests.Response) -> Any:
        if resp.status_code == 429:
            raise self._fail(f"{self.provider_name} rate limit (HTTP 429)", 429)
        if not resp.ok:
            raise self._fail(
                f"{self.provider_name} API error: HTTP {resp.status_code} {resp.reason or ''}".strip(),
                resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise self._fail(f"{self.provider_name} returned invalid JSON: {exc}") from exc

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if self.rate_limiter is not None:
            self.rate_limiter.wait_for_slot()
        url = self._url(path)
        logger.debug("GET %s %s", self.provider_name, redact(url, self.secrets))
        try:
            resp = requests.get(url, params=params, headers=self.headers, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise self._fail(f"{self.provider_name} request failed: {exc}") from exc
        return self._decode(resp)

    def post_json(self, path: str, payload: Any) -> Any:
        if self.rate_limiter is not None:
            self.rate_limiter.wait_for_slot()
        url = self._url(path)
        logger.debug("POST %s %s", self.provider_name, redact(url, self.secrets))
        try:
            resp = requests.post(
                url,
                json=payload,
                headers={**self.headers, "Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise self._fail(f"{self.provider_name} request failed: {exc}") from exc
        return self._decode(resp)
