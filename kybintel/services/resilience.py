"""
Resilience Patterns: bounded timeout, retry with backoff, circuit breaker.

Applied to every registry call. A call that still fails after these layers
is reported to the caller, which degrades that category only.
"""

import asyncio
import random
import time
from enum import Enum
from typing import Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ── Retry with Exponential Backoff ─────────────────────────────────────────


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    jitter: float = 0.25,
    retry_on: tuple = (Exception,),
    give_up_on: tuple = (),
    operation_name: str = "operation",
) -> T:
    """
    Retry an async callable with exponential backoff and jitter.

    Delay before attempt n+1: min(base_delay * 2^n, max_delay) + U(0, jitter).
    Exceptions in `give_up_on` are re-raised immediately (e.g. 404s).
    """
    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except give_up_on:
            raise
        except retry_on as exc:
            if attempt == max_retries:
                logger.error(
                    "retry_exhausted",
                    operation=operation_name,
                    attempts=attempt + 1,
                    error=str(exc),
                )
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            delay += random.uniform(0, jitter)
            logger.warning(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay=round(delay, 2),
                error=str(exc),
            )
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")


async def with_timeout(fn: Callable[[], Awaitable[T]], timeout: float, operation_name: str) -> T:
    """Run fn under a hard deadline. Timeout surfaces as asyncio.TimeoutError."""
    try:
        return await asyncio.wait_for(fn(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("operation_timeout", operation=operation_name, timeout=timeout)
        raise


# ── Circuit Breaker ─────────────────────────────────────────────────────────


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a circuit breaker is open and rejects a call."""


class CircuitBreaker:
    """
    Stop hammering an upstream that is down.

    - CLOSED: normal. `failure_threshold` failures within `window_seconds` → OPEN
    - OPEN: reject immediately for `recovery_timeout` seconds, then HALF_OPEN
    - HALF_OPEN: one probe. Success → CLOSED; failure → OPEN

    Exceptions listed in `ignore` (e.g. "not found") pass through without
    counting as failures.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        window_seconds: float = 60.0,
        recovery_timeout: float = 30.0,
        ignore: tuple = (),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.window_seconds = window_seconds
        self.recovery_timeout = recovery_timeout
        self.ignore = ignore

        self._state = CircuitState.CLOSED
        self._failures: list[float] = []
        self._opened_at: float = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", breaker=self.name)
        return self._state

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        state = self.state

        if state == CircuitState.OPEN:
            logger.warning("circuit_open_rejected", breaker=self.name)
            raise CircuitOpenError(f"Circuit breaker '{self.name}' is OPEN")

        if state == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitOpenError(f"Circuit breaker '{self.name}' is testing")
            self._probe_in_flight = True

        try:
            result = await fn()
        except self.ignore:
            self._probe_in_flight = False
            raise
        except Exception:
            self._on_failure()
            raise
        except BaseException:
            # Cancelled trial call: the next call may try again
            self._probe_in_flight = False
            raise
        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("circuit_closed", breaker=self.name)
        self._state = CircuitState.CLOSED
        self._failures.clear()
        self._probe_in_flight = False

    def _on_failure(self) -> None:
        now = time.monotonic()
        self._probe_in_flight = False

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            self._opened_at = now
            logger.warning("circuit_reopened", breaker=self.name)
            return

        cutoff = now - self.window_seconds
        self._failures = [t for t in self._failures if t > cutoff]
        self._failures.append(now)

        if len(self._failures) >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = now
            logger.warning(
                "circuit_opened",
                breaker=self.name,
                failures=len(self._failures),
                threshold=self.failure_threshold,
            )

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failures.clear()
        self._probe_in_flight = False
