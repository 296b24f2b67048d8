"""jetclient is a Python client for the Jet merchant API.

It handles the login exchange, keeps the bearer token, coordinates
reauthentication across threads, and retries requests rejected with 401 or
rate limited with 429.
"""

import importlib.metadata

from jetclient.exceptions import (
    # Base exceptions
    JetError,
    JetClientClosed,
    # Transport errors
    JetTransportError,
    JetSystemUnavailableError,
    JetTimeoutError,
    JetProtocolError,
    JetNetworkError,
    JetResponseTooLargeError,
    # Response errors
    JetBusinessError,
    JetUnauthorizedError,
    JetRateLimitError,
    # Authentication errors
    JetAuthError,
    JetInvalidCredentialsFormat,
    JetNotAuthenticatedError,
    JetAuthExpiredError,
    JetAuthStateCorrupt,
    JetMalformedLoginResponse,
    JetAuthenticationFailed,
    JetReauthLimitExceeded,
    check_response,
)
from jetclient.JetClient import JetClient
from jetclient._httpx import JetHttpClient
from jetclient.auth import AUTH_TEST_RESPONSE, AuthState, JetAuthCoordinator
from jetclient.config import JetConfig
from jetclient.credentials import CredentialStore
from jetclient.executor import JetRequestExecutor, PendingRequest
from jetclient.handlers import HandlerRegistry
from jetclient.headers import JetHeaderBuilder

__version__ = importlib.metadata.version("jetclient")
__all__ = [
    # Core client
    "JetClient",
    "JetConfig",
    # Request pipeline components
    "JetHttpClient",
    "CredentialStore",
    "JetHeaderBuilder",
    "JetAuthCoordinator",
    "AuthState",
    "AUTH_TEST_RESPONSE",
    "JetRequestExecutor",
    "PendingRequest",
    "HandlerRegistry",
    "check_response",
    # Base exceptions
    "JetError",
    "JetClientClosed",
    # Transport errors
    "JetTransportError",
    "JetSystemUnavailableError",
    "JetTimeoutError",
    "JetProtocolError",
    "JetNetworkError",
    "JetResponseTooLargeError",
    # Response errors
    "JetBusinessError",
    "JetUnauthorizedError",
    "JetRateLimitError",
    # Authentication errors
    "JetAuthError",
    "JetInvalidCredentialsFormat",
    "JetNotAuthenticatedError",
    "JetAuthExpiredError",
    "JetAuthStateCorrupt",
    "JetMalformedLoginResponse",
    "JetAuthenticationFailed",
    "JetReauthLimitExceeded",
]
