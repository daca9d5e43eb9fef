"""
Resilience primitives: per-provider circuit breakers, a TTL response cache
and a sliding-window rate limiter.

The breaker registry is the only shared mutable state in the routing layer.
It is guarded by a lock because health checks and source comparisons run
provider calls on worker threads.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 3
RECOVERY_SECONDS = 60.0


class BreakerState(enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class SlotDecision(enum.Enum):
    """Whether a caller may dispatch one request to a provider right now."""

    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for one provider.

    Transitions:
    - CLOSED -> OPEN: a failure brings consecutive failures to `failure_threshold`.
    - OPEN -> HALF_OPEN: the first slot request after `recovery_seconds` have
      passed since the last failure. That request is the single probe.
    - HALF_OPEN -> CLOSED: the probe succeeds.
    - HALF_OPEN -> OPEN: the probe fails (the recovery timer restarts).
    """

    provider_name: str
    failure_threshold: int = FAILURE_THRESHOLD
    recovery_seconds: float = RECOVERY_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    failures: int = field(default=0, init=False)
    last_failure_time: Optional[float] = field(default=None, init=False)
    state: BreakerState = field(default=BreakerState.CLOSED, init=False)

    def attempt_slot(self) -> SlotDecision:
        if self.state is BreakerState.CLOSED:
            return SlotDecision.ALLOWED
        if self.state is BreakerState.HALF_OPEN:
            return SlotDecision.DENIED
        elapsed = self.clock() - (self.last_failure_time or 0.0)
        if elapsed > self.recovery_seconds:
            self.state = BreakerState.HALF_OPEN
            logger.info("Circuit breaker HALF_OPEN for %s, allowing one probe", self.provider_name)
            return SlotDecision.ALLOWED
        return SlotDecision.DENIED

    def record_success(self) -> None:
        if self.state is not BreakerState.CLOSED:
            logger.info("Circuit breaker CLOSED for %s", self.provider_name)
        self.failures = 0
        self.state = BreakerState.CLOSED

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self.clock()
        if self.failures >= self.failure_threshold:
            if self.state is not BreakerState.OPEN:
                logger.warning(
                    "Circuit breaker OPEN for %s after %d failures",
                    self.provider_name, self.failures,
                )
            self.state = BreakerState.OPEN

    def reset(self) -> None:
        self.failures = 0
        self.last_failure_time = None
        self.state = BreakerState.CLOSED


class CircuitBreakerRegistry:
    """
    Per-provider breakers keyed by provider name, created on first reference.

    One registry is owned by each router; breaker state for a provider is
    shared by every operation that lists that provider.
    """

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        recovery_seconds: float = RECOVERY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_seconds = recovery_seconds
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def _get(self, provider: str) -> CircuitBreaker:
        breaker = self._breakers.get(provider)
        if breaker is None:
            breaker = CircuitBreaker(
                provider_name=provider,
                failure_threshold=self._failure_threshold,
                recovery_seconds=self._recovery_seconds,
                clock=self._clock,
            )
            self._breakers[provider] = breaker
        return breaker

    def attempt_slot(self, provider: str) -> SlotDecision:
        """Decide whether `provider` may be called now; consumes the half-open probe."""
        with self._lock:
            return self._get(provider).attempt_slot()

    def is_open(self, provider: str) -> bool:
        """True when a call to `provider` would be skipped. Same transition as attempt_slot."""
        return self.attempt_slot(provider) is SlotDecision.DENIED

    def record_success(self, provider: str) -> None:
        with self._lock:
            self._get(provider).record_success()

    def record_failure(self, provider: str) -> None:
        with self._lock:
            self._get(provider).record_failure()

    def is_probing(self, provider: str) -> bool:
        """True while the single half-open probe for `provider` is outstanding."""
        with self._lock:
            return self._get(provider).state is BreakerState.HALF_OPEN

    def failures(self, provider: str) -> int:
        with self._lock:
            return self._get(provider).failures

    def reset(self, provider: Optional[str] = None) -> None:
        with self._lock:
            targets = [self._get(provider)] if provider else list(self._breakers.values())
            for breaker in targets:
                breaker.reset()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Read-only view for diagnostics: {provider: {is_open, failures, state}}."""
        with self._lock:
            return {
                name: {
                    "is_open": cb.state is BreakerState.OPEN,
                    "failures": cb.failures,
                    "state": cb.state.value,
                }
                for name, cb in self._breakers.items()
            }


class TTLCache:
    """
    Bounded response cache with a per-entry time to live.

    Adapters key entries by request parameters so the routing layer never
    has to cache. The least recently used entry is evicted at capacity.
    """

    def __init__(self, max_size: int = 200, clock: Callable[[], float] = time.monotonic) -> None:
        self._max_size = max_size
        self._clock = clock
        self._store: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return value

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            if key not in self._store and len(self._store) >= self._max_size:
                self._store.popitem(last=False)
            self._store[key] = (value, self._clock() + ttl_seconds)
            self._store.move_to_end(key)

    def get_or_fetch(self, key: str, ttl_seconds: float, fetch: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetch()
        self.put(key, value, ttl_seconds)
        return value

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


class RateLimiter:
    """Sliding-window limiter: at most `max_requests` per `window_seconds`."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._requests: list[float] = []
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        self._requests = [t for t in self._requests if now - t < self.window_seconds]

    def can_make_request(self) -> bool:
        with self._lock:
            self._prune(self._clock())
            return len(self._requests) < self.max_requests

    def wait_for_slot(self) -> None:
        while True:
            with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._requests) < self.max_requests:
                    self._requests.append(now)
                    return
            self._sleep(0.1)


# Response TTLs in seconds, by data volatility.
TTL_GAS = 15.0
TTL_PRICE = 30.0
TTL_TVL = 60.0
TTL_PROTOCOL = 300.0
TTL_STATIC = 900.0
