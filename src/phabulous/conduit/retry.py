"""Bounded retry with exponential backoff for Conduit calls.

A logical call moves through ``ATTEMPTING(n)`` and ends in ``SUCCEEDED`` or
``FAILED_TERMINAL``; ``FAILED_RETRYABLE`` sends it back to ``ATTEMPTING``
after a backoff delay. The state lives in a ``RetryState`` created per call,
so concurrent calls never share retry bookkeeping.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .errors import ConduitClientError, ConduitErrorKind, ConduitTimeoutError
from .messages import ConduitRequest, ConduitResponse

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    """Where a logical call is in its retry lifecycle."""

    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"
    FAILED_RETRYABLE = "failed_retryable"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))


@dataclass
class RetryState:
    """Per-call retry bookkeeping."""

    attempt: int = 0
    state: AttemptState = AttemptState.ATTEMPTING
    auth_refreshed: bool = False
    last_error: ConduitClientError | None = None

    def begin_attempt(self) -> int:
        self.attempt += 1
        self.state = AttemptState.ATTEMPTING
        return self.attempt

    def succeed(self) -> None:
        self.state = AttemptState.SUCCEEDED
        self.last_error = None

    def fail(self, error: ConduitClientError, policy: RetryPolicy) -> AttemptState:
        """Record a failed attempt and decide whether another one follows."""
        self.last_error = error
        if error.retryable and self.attempt < policy.max_attempts:
            self.state = AttemptState.FAILED_RETRYABLE
        else:
            self.state = AttemptState.FAILED_TERMINAL
        return self.state

    def fail_after_refresh(self, error: ConduitClientError, refreshed: bool) -> AttemptState:
        """Record an auth failure once credentials have been refreshed.

        A successful refresh buys one extra attempt that does not count
        against the retry budget. Refresh happens at most once per call.
        """
        self.last_error = error
        self.auth_refreshed = True
        if refreshed:
            self.attempt -= 1
            self.state = AttemptState.FAILED_RETRYABLE
        else:
            self.state = AttemptState.FAILED_TERMINAL
        return self.state


Attempt = Callable[[float | None], ConduitResponse]


class Retrier:
    """Drives a ``RetryState`` through a bounded loop.

    ``sleep`` and ``clock`` are injectable so tests run without real delays.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

    def run(
        self,
        request: ConduitRequest,
        attempt: Attempt,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        refresh_auth: Callable[[], bool] | None = None,
    ) -> ConduitResponse:
        """Run ``attempt`` until it succeeds or fails terminally.

        Args:
            request: The request being attempted (for diagnostics)
            attempt: Performs one attempt; receives the remaining time budget
                in seconds (``None`` when unbounded)
            timeout: Overall budget for the logical call, in seconds
            cancel: External cancellation signal
            refresh_auth: Called once on the first auth failure; returns True
                if new credentials were obtained

        Returns:
            The final ConduitResponse (success or classified failure)
        """
        deadline = self._clock() + timeout if timeout is not None else None
        state = RetryState()

        while True:
            remaining = self._remaining(deadline)
            if self._cancelled(cancel) or (remaining is not None and remaining <= 0):
                return self._timed_out(request, state)

            n = state.begin_attempt()
            response = attempt(remaining)
            error = response.error
            if self._cancelled(cancel):
                # Cancelled while the attempt was in flight; discard its outcome
                if error is not None:
                    state.last_error = error
                return self._timed_out(request, state)

            if error is None:
                state.succeed()
                if n > 1:
                    logger.info("Conduit %s: succeeded on attempt %d", request.method, n)
                return response

            if (
                error.kind is ConduitErrorKind.AUTHENTICATION_FAILED
                and refresh_auth is not None
                and not state.auth_refreshed
            ):
                logger.info("Conduit %s: authentication rejected, refreshing", request.method)
                try:
                    refreshed = refresh_auth()
                except ConduitClientError as refresh_error:
                    logger.error(
                        "Conduit %s: credential refresh failed: %s", request.method, refresh_error
                    )
                    return ConduitResponse.failure(refresh_error)
                if state.fail_after_refresh(error, refreshed) is AttemptState.FAILED_RETRYABLE:
                    continue
                return response

            if state.fail(error, self.policy) is AttemptState.FAILED_TERMINAL:
                if error.retryable:
                    logger.error(
                        "Conduit %s: giving up after %d attempt(s): %s",
                        request.method,
                        n,
                        error,
                    )
                return response

            delay = self.policy.delay_for(n)
            logger.warning(
                "Conduit %s: attempt %d/%d failed (%s), retrying in %.1fs",
                request.method,
                n,
                self.policy.max_attempts,
                error.kind.value,
                delay,
            )
            if self._wait(delay, deadline, cancel):
                return self._timed_out(request, state)

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return deadline - self._clock()

    @staticmethod
    def _cancelled(cancel: threading.Event | None) -> bool:
        return cancel is not None and cancel.is_set()

    def _wait(
        self, delay: float, deadline: float | None, cancel: threading.Event | None
    ) -> bool:
        """Back off for ``delay`` seconds. Returns True if interrupted."""
        remaining = self._remaining(deadline)
        if remaining is not None and remaining <= delay:
            return True
        if cancel is not None:
            return cancel.wait(delay)
        self._sleep(delay)
        return False

    def _timed_out(self, request: ConduitRequest, state: RetryState) -> ConduitResponse:
        last = state.last_error
        state.state = AttemptState.FAILED_TERMINAL
        logger.error(
            "Conduit %s: timed out or cancelled after %d attempt(s)", request.method, state.attempt
        )
        return ConduitResponse.failure(
            ConduitTimeoutError(
                f"Call timed out or was cancelled after {state.attempt} attempt(s)",
                method=request.method,
                params=request.params,
                error_code=last.error_code if last else None,
                error_info=str(last) if last else None,
            )
        )
