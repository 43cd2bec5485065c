"""Bounded retries with linear-exponential backoff and jitter.

The backoff decision is a pure function of the attempt number and a jitter
sample. ``call_with_retry`` performs the waiting on a cancellation event so a
cancelled caller stops immediately instead of sleeping out the delay.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, TypeVar

from errors import GenerationError, OperationCancelled, RetryExhaustedError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (GenerationError,)


@dataclass(frozen=True, slots=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 2.0
    max_jitter_seconds: float = 1.0

    def decide(self, attempt: int, jitter: float) -> RetryDecision:
        """Decide what to do after ``attempt`` (1-based) failed.

        ``jitter`` is a sample in [0, 1) scaled by ``max_jitter_seconds``.
        """
        if attempt >= self.max_attempts:
            return RetryDecision(retry=False)
        delay = attempt * self.base_delay_seconds + jitter * self.max_jitter_seconds
        return RetryDecision(retry=True, delay=delay)


def call_with_retry(
    operation: Callable[[int], T],
    policy: BackoffPolicy,
    cancel: threading.Event | None = None,
    rng: Callable[[], float] = random.random,
    label: str = "operation",
) -> T:
    """Call ``operation(attempt)`` until it succeeds or the policy gives up.

    Only RETRYABLE_ERRORS trigger another attempt; anything else propagates.
    Raises RetryExhaustedError chained from the last failure, or
    OperationCancelled if ``cancel`` is set before or during a wait.
    """
    if cancel is None:
        cancel = threading.Event()

    last_error: Exception | None = None
    for attempt in range(1, policy.max_attempts + 1):
        if cancel.is_set():
            raise OperationCancelled(f"{label} cancelled before attempt {attempt}")

        LOGGER.info("Attempting %s: attempt %s/%s", label, attempt, policy.max_attempts)
        try:
            return operation(attempt)
        except RETRYABLE_ERRORS as exc:
            last_error = exc
            LOGGER.warning(
                "%s attempt %s/%s failed: %s (remaining=%s)",
                label,
                attempt,
                policy.max_attempts,
                exc,
                policy.max_attempts - attempt,
            )

        decision = policy.decide(attempt, rng())
        if not decision.retry:
            break
        if cancel.wait(decision.delay):
            raise OperationCancelled(f"{label} cancelled during retry wait") from last_error

    assert last_error is not None
    raise RetryExhaustedError(policy.max_attempts, last_error) from last_error
