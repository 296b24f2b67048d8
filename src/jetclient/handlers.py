"""Observers notified of terminal request errors and rate limiting."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[Optional[httpx.Response], BaseException], None]
RateLimitHandler = Callable[[httpx.Response], None]


class HandlerRegistry:
    """Append-only lists of error and rate-limit observers.

    Each list is an immutable tuple replaced under a lock on registration, so
    notification iterates a stable snapshot without holding the lock. Handlers
    are called in registration order; a handler that raises is logged and the
    remaining handlers still run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._error_handlers: Tuple[ErrorHandler, ...] = ()
        self._rate_limit_handlers: Tuple[RateLimitHandler, ...] = ()

    @property
    def error_handlers(self) -> Tuple[ErrorHandler, ...]:
        return self._error_handlers

    @property
    def rate_limit_handlers(self) -> Tuple[RateLimitHandler, ...]:
        return self._rate_limit_handlers

    def add_error_handler(self, handler: ErrorHandler) -> None:
        with self._lock:
            self._error_handlers = self._error_handlers + (handler,)

    def add_rate_limit_handler(self, handler: RateLimitHandler) -> None:
        with self._lock:
            self._rate_limit_handlers = self._rate_limit_handlers + (handler,)

    def notify_error(self, response: Optional[httpx.Response], error: BaseException) -> None:
        for handler in self._error_handlers:
            try:
                handler(response, error)
            except Exception:
                logger.exception(f"Error handler {handler!r} raised")

    def notify_rate_limit(self, response: httpx.Response) -> None:
        for handler in self._rate_limit_handlers:
            try:
                handler(response)
            except Exception:
                logger.exception(f"Rate limit handler {handler!r} raised")
