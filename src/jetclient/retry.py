"""Retry configuration for the jetclient request executor, built on tenacity."""

import logging
import os
import time
from typing import Callable, Optional, Set, Tuple, Type

from tenacity import (
    RetryCallState,
    after_log,
    stop_after_attempt,
)

from jetclient.exceptions import JetBusinessError, JetRateLimitError, JetUnauthorizedError

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_DELAY = 5.0

# One retry for each remediation class: 401 then 429 then success is three attempts.
MAX_ATTEMPTS = 3


def should_retry_unauthorized(exception: BaseException) -> bool:
    return isinstance(exception, JetUnauthorizedError)


def should_retry_rate_limited(exception: BaseException) -> bool:
    return isinstance(exception, JetRateLimitError)


class RemediationRetryCondition:
    """
    Retry condition allowing a single retry per remediation class.

    A fresh instance is needed for every request, since it remembers which
    classes have already been retried.
    """

    def __init__(
        self,
        retryable: Tuple[Type[JetBusinessError], ...] = (JetUnauthorizedError, JetRateLimitError),
    ):
        self._retryable = retryable
        self._remediated: Set[Type[JetBusinessError]] = set()

    def __call__(self, retry_state: RetryCallState) -> bool:
        if not retry_state.outcome.failed:
            return False
        exception = retry_state.outcome.exception()
        for error_class in self._retryable:
            if isinstance(exception, error_class):
                if error_class in self._remediated:
                    return False
                self._remediated.add(error_class)
                return True
        return False


class RateLimitWait:
    """Wait strategy: a fixed delay after 429, no delay after 401."""

    def __init__(self, delay: float):
        self.delay = delay

    def __call__(self, retry_state: RetryCallState) -> float:
        if retry_state.outcome is not None and should_retry_rate_limited(
            retry_state.outcome.exception()
        ):
            return self.delay
        return 0.0


def backoff_sleep(seconds: float) -> None:
    """Sleep the calling thread, skipping the call entirely for zero waits."""
    if seconds:
        logger.debug(f"Backing off for {seconds} seconds")
        time.sleep(seconds)


def get_rate_limit_delay() -> float:
    """Get the 429 backoff delay from environment."""
    return float(os.environ.get("JETCLIENT_RATE_LIMIT_DELAY", "") or DEFAULT_RATE_LIMIT_DELAY)


def get_remediation_retry_config(
    remediate: Callable[[RetryCallState], None],
    rate_limit_delay: Optional[float] = None,
) -> dict:
    """Get the tenacity configuration for one request.

    Args:
        remediate: Called before each retry with the tenacity retry state; it
            reauthenticates after 401 and notifies observers after 429.
        rate_limit_delay: Seconds to wait after 429. Defaults to
            JETCLIENT_RATE_LIMIT_DELAY, or 5 seconds.
    """
    if rate_limit_delay is None:
        rate_limit_delay = get_rate_limit_delay()
    return {
        "stop": stop_after_attempt(MAX_ATTEMPTS),
        "wait": RateLimitWait(rate_limit_delay),
        "retry": RemediationRetryCondition(),
        "before_sleep": remediate,
        "after": after_log(logger, logging.DEBUG),
        "sleep": backoff_sleep,
        "reraise": True,
    }
