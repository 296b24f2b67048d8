"""
Custom exceptions for the jetclient package.

This module provides Jet-specific exceptions that wrap httpx exceptions and
classifies completed responses (including Jet's JSON error envelope) into
retryable and terminal failures.
"""

import functools
import json
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    ParamSpec,
    Type,
    TypeVar,
    cast,
)

import httpx

P = ParamSpec("P")
T = TypeVar("T")


# Base Jet exceptions
class JetError(Exception):
    """Base exception for all Jet-related errors."""

    pass


class JetClientClosed(JetError):
    """
    Raised when an operation is attempted on a closed JetClient.
    """

    def __init__(self, message: str = "The JetClient is closed") -> None:
        super().__init__(message)


# Transport errors
class JetTransportError(JetError, httpx.RequestError):
    """
    Base class for Jet transport errors.
    Raised for connection, timeout and response size problems. Never retried.
    """

    def __init__(self, message: str, *, request: Optional[httpx.Request] = None) -> None:
        super().__init__(message)
        self.message = message
        self._request = request

    def __str__(self) -> str:
        return f"Jet transport error: {self.message}"


class JetSystemUnavailableError(JetTransportError):
    """
    Raised when the Jet API host cannot be reached at all.
    """

    def __str__(self) -> str:
        return f"Jet API unavailable: {self.message}"


class JetTimeoutError(JetTransportError, httpx.TimeoutException):
    """
    Raised when the connect or read timeout elapses.
    """

    def __str__(self) -> str:
        return f"Jet request timeout: {self.message}"


class JetProtocolError(JetTransportError):
    """
    Raised for HTTP protocol-level errors.
    """

    def __str__(self) -> str:
        return f"Jet protocol error: {self.message}"


class JetNetworkError(JetTransportError):
    """
    Raised for general network errors (DNS failures, connection resets, ...).
    """

    def __str__(self) -> str:
        return f"Jet network error: {self.message}"


class JetResponseTooLargeError(JetTransportError):
    """
    Raised when a response body exceeds the configured maximum download size.
    """

    def __init__(
        self, max_size: int, *, request: Optional[httpx.Request] = None
    ) -> None:
        super().__init__(
            f"Response body exceeds the maximum download size of {max_size} bytes",
            request=request,
        )
        self.max_size = max_size

    def __str__(self) -> str:
        return f"Jet response too large: {self.message}"


# Response errors
class JetBusinessError(JetError, httpx.HTTPStatusError):
    """
    A syntactically valid response that carries a Jet error envelope, or an
    HTTP error status.

    Attributes:
        messages (list[str]): Messages decoded from the error envelope.
        response (httpx.Response): The raw response.
    """

    def __init__(
        self,
        message: str = "Jet API Error Response",
        *,
        request: Optional[httpx.Request] = None,
        response: Optional[httpx.Response] = None,
        messages: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message, request=request, response=response)
        self.message = message
        self.messages: List[str] = list(messages or [])

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    def implode_messages(self, delim: str = "; ") -> str:
        """Join the envelope messages into a single string."""
        return delim.join(self.messages)

    def __str__(self) -> str:
        detail = f": {self.implode_messages()}" if self.messages else ""
        if self.status_code is not None:
            return f"Jet API error: {self.message}{detail} (HTTP {self.status_code})"
        return f"Jet API error: {self.message}{detail}"


class JetUnauthorizedError(JetBusinessError):
    """
    Raised for 401 responses. Retried once after reauthentication.
    """

    def __str__(self) -> str:
        return f"Jet authorization rejected: {self.message}"


class JetRateLimitError(JetBusinessError):
    """
    Raised for 429 responses. Retried once after a fixed delay.
    """

    def __str__(self) -> str:
        return f"Jet rate limit exceeded: {self.message}"


# Authentication errors
class JetAuthError(JetError):
    """Base class for credential and login failures. Never retried."""

    pass


class JetInvalidCredentialsFormat(JetAuthError, ValueError):
    """Raised when a token, token type or expiry cannot be stored."""

    pass


class JetNotAuthenticatedError(JetAuthError):
    """Raised when no token has been stored."""

    def __init__(
        self, message: str = "Not authenticated (not logged in to the Jet API)"
    ) -> None:
        super().__init__(message)


class JetAuthExpiredError(JetAuthError):
    """Raised when the stored token has expired."""

    pass


class JetAuthStateCorrupt(JetAuthError):
    """Raised when the stored expiry cannot be read."""

    def __init__(
        self, message: str = "Missing token expiry. Cannot verify authentication"
    ) -> None:
        super().__init__(message)


class JetMalformedLoginResponse(JetAuthError):
    """Raised when the login response lacks id_token, token_type or expires_on."""

    def __init__(
        self,
        message: str = (
            "Authentication response is missing id_token, token_type or expires_on."
            " Check authentication response"
        ),
    ) -> None:
        super().__init__(message)


class JetAuthenticationFailed(JetAuthError):
    """Raised when the live auth test rejects freshly issued credentials."""

    def __init__(self, message: str = "Jet rejected the authentication test") -> None:
        super().__init__(message)


class JetReauthLimitExceeded(JetAuthError):
    """Raised once the consecutive reauthentication limit has been reached."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"{attempts} attempts to reauthenticate have failed; not trying again."
        )
        self.attempts = attempts


# Exception mapping dictionaries
_HTTP_STATUS_EXCEPTIONS: Dict[int, Type[JetBusinessError]] = {
    401: JetUnauthorizedError,
    429: JetRateLimitError,
}

_CONNECTION_EXCEPTIONS: Dict[Type[httpx.RequestError], Type[JetTransportError]] = {
    httpx.ConnectError: JetSystemUnavailableError,
    httpx.ConnectTimeout: JetTimeoutError,
    httpx.ReadTimeout: JetTimeoutError,
    httpx.WriteTimeout: JetTimeoutError,
    httpx.PoolTimeout: JetTimeoutError,
    httpx.RemoteProtocolError: JetProtocolError,
    httpx.LocalProtocolError: JetProtocolError,
    httpx.ReadError: JetNetworkError,
    httpx.WriteError: JetNetworkError,
    httpx.CloseError: JetNetworkError,
}


def _request_of(error_or_response: Any) -> Optional[httpx.Request]:
    """Return the request attached to an httpx error or response, if any."""
    try:
        return error_or_response.request
    except RuntimeError:
        return None


def error_messages(response: httpx.Response) -> Optional[List[str]]:
    """Decode Jet's JSON error envelope.

    Args:
        response: A completed response.

    Returns:
        The envelope messages, or None when the body is not an error envelope.
    """
    try:
        text = response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return None
    if not text or not text.lstrip().startswith("{"):
        return None
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(body, dict):
        return None

    errors = body.get("errors")
    if isinstance(errors, list):
        return [e if isinstance(e, str) else json.dumps(e) for e in errors]
    error = body.get("error")
    if isinstance(error, str):
        return [error]
    return None


def check_response(response: httpx.Response) -> httpx.Response:
    """Raise the exception matching a completed response, or return it unchanged.

    401 and 429 raise the retryable JetUnauthorizedError and JetRateLimitError.
    A Jet error envelope or any other 4xx/5xx status raises a terminal
    JetBusinessError.
    """
    messages = error_messages(response)
    status_code = response.status_code
    request = _request_of(response)

    if status_code in _HTTP_STATUS_EXCEPTIONS:
        exception_class = _HTTP_STATUS_EXCEPTIONS[status_code]
        raise exception_class(
            response.reason_phrase or f"HTTP {status_code}",
            request=request,
            response=response,
            messages=messages,
        )
    if messages is not None or status_code >= 400:
        raise JetBusinessError(
            request=request,
            response=response,
            messages=messages,
        )
    return response


def _create_jet_exception(original_error: httpx.RequestError) -> JetTransportError:
    """Create the Jet transport exception matching an httpx request error."""
    request = _request_of(original_error)

    for error_type in type(original_error).__mro__:
        if error_type in _CONNECTION_EXCEPTIONS:
            return _CONNECTION_EXCEPTIONS[error_type](str(original_error), request=request)
    if isinstance(original_error, httpx.TimeoutException):
        return JetTimeoutError(str(original_error), request=request)
    return JetTransportError(f"Connection error: {original_error}", request=request)


def jet_errors(func: Callable[P, T]) -> Callable[P, T]:
    """
    Decorator that converts httpx request errors to Jet transport errors.

    Usage:
        >>> @jet_errors
        ... def call(self, method, url):
        ...     return self._client.request(method, url)
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except JetError:
            raise
        except httpx.RequestError as e:
            raise _create_jet_exception(e) from e

    return cast(Callable[P, T], wrapper)
