"""
Provider chains: ordered fallback over redundant providers.

A chain tries providers in the order given. Circuit breakers skip providers
known to be down. A provider that raises, or whose answer the validator
rejects, is recorded as failed and the next one is tried. The first
validated answer wins; there are no retries inside one attempt and
providers are never raced.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..core.errors import AllProvidersFailedError, ConfigurationError
from .resilience import CircuitBreakerRegistry, SlotDecision

logger = logging.getLogger(__name__)

T = TypeVar("T")

CIRCUIT_OPEN_REASON = "circuit breaker open"
VALIDATION_FAILED_REASON = "validation failed"


@dataclass(frozen=True)
class ProviderAttempt(Generic[T]):
    """One provider in a fallback list: its name and a zero-arg call."""

    name: str
    invoke: Callable[[], T]


@dataclass(frozen=True)
class FallbackOutcome(Generic[T]):
    """The winning value, who produced it, and its zero-based position."""

    value: T
    source_name: str
    fallback_index: int


def unconfigured_attempt(name: str, message: str, hint: Optional[str] = None) -> ProviderAttempt:
    """Placeholder for an operation with no configured provider; always fails."""

    def _fail():
        raise ConfigurationError(message, hint)

    return ProviderAttempt(name=name, invoke=_fail)


class FallbackExecutor:
    """Runs ProviderAttempt lists against a shared CircuitBreakerRegistry."""

    def __init__(self, breakers: Optional[CircuitBreakerRegistry] = None) -> None:
        self.breakers = breakers or CircuitBreakerRegistry()

    def execute(
        self,
        attempts: Sequence[ProviderAttempt[T]],
        validate: Optional[Callable[[T], bool]] = None,
    ) -> FallbackOutcome[T]:
        if not attempts:
            raise ValueError("execute() needs at least one provider attempt")

        errors: List[Tuple[str, str]] = []
        config_errors = 0

        for index, attempt in enumerate(attempts):
            name = attempt.name
            if self.breakers.attempt_slot(name) is SlotDecision.DENIED:
                logger.debug("Skipping %s: %s", name, CIRCUIT_OPEN_REASON)
                errors.append((name, CIRCUIT_OPEN_REASON))
                continue

            logger.debug("Trying %s (position %d)", name, index)
            try:
                value = attempt.invoke()
                accepted = validate is None or validate(value)
            except ConfigurationError as exc:
                # Missing credentials say nothing about upstream health,
                # but a consumed half-open probe must still be settled.
                if self.breakers.is_probing(name):
                    self.breakers.record_failure(name)
                errors.append((name, str(exc)))
                config_errors += 1
                continue
            except Exception as exc:
                self.breakers.record_failure(name)
                logger.warning("Provider %s failed: %s", name, exc)
                errors.append((name, str(exc) or type(exc).__name__))
                continue

            if not accepted:
                self.breakers.record_failure(name)
                logger.warning("Provider %s returned an invalid result: %r", name, value)
                errors.append((name, VALIDATION_FAILED_REASON))
                continue

            self.breakers.record_success(name)
            if index > 0:
                logger.info("Served by %s after %d fallback(s)", name, index)
            return FallbackOutcome(value=value, source_name=name, fallback_index=index)

        aggregate = AllProvidersFailedError(errors)
        if config_errors == len(errors):
            raise ConfigurationError(str(aggregate))
        logger.warning("%s", aggregate)
        raise aggregate
