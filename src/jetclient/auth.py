"""
Login handshake and reauthentication coordination for the Jet API.

A single JetAuthCoordinator is shared by every thread using a client. At most
one thread performs the login handshake at a time; the others wait for it to
finish and then reuse the token it stored.
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from typing import Optional

from jetclient._httpx import JetHttpClient
from jetclient.config import JetConfig
from jetclient.credentials import CredentialStore
from jetclient.exceptions import (
    JetAuthenticationFailed,
    JetBusinessError,
    JetMalformedLoginResponse,
    JetReauthLimitExceeded,
    check_response,
)
from jetclient.headers import JetHeaderBuilder

logger = logging.getLogger(__name__)

# Body returned by the auth-test endpoint for a valid token, JSON quotes included.
AUTH_TEST_RESPONSE = '"This message is authorized."'

DEFAULT_LOCK_TIMEOUT = 1.0
DEFAULT_WAIT_TIMEOUT = 60.0
DEFAULT_MAX_REAUTH_ATTEMPTS = 5


class AuthState(enum.Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class JetAuthCoordinator:
    """Serializes logins and counts consecutive reauthentication attempts.

    Args:
        http (JetHttpClient): Client used for the login and auth-test calls.
        store (CredentialStore): Where the issued token is kept.
        config (JetConfig): Supplies the Accept headers for the login calls.
        lock_timeout (float): Seconds to wait for the auth lock before falling
            back to waiting for the thread that holds it.
        wait_timeout (float | None): Upper bound in seconds on that wait.
        max_reauth_attempts (int): Consecutive counted logins allowed before
            JetReauthLimitExceeded is raised.
    """

    def __init__(
        self,
        http: JetHttpClient,
        store: CredentialStore,
        config: Optional[JetConfig] = None,
        *,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        wait_timeout: Optional[float] = DEFAULT_WAIT_TIMEOUT,
        max_reauth_attempts: int = DEFAULT_MAX_REAUTH_ATTEMPTS,
    ):
        self._http = http
        self._store = store
        self._config = config or JetConfig()
        self.lock_timeout = lock_timeout
        self.wait_timeout = wait_timeout
        self.max_reauth_attempts = max_reauth_attempts
        self._lock = threading.RLock()
        self._condition = threading.Condition()
        self._reauthenticating = False
        self._reauth_attempts = 0
        self._generation = 0
        self._state = AuthState.IDLE

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def reauth_attempts(self) -> int:
        return self._reauth_attempts

    @property
    def reauthenticating(self) -> bool:
        return self._reauthenticating

    def _is_current(self, stale_header: Optional[str]) -> bool:
        if not self._store.is_authenticated():
            return False
        return stale_header is None or self._store.authorization_header_value != stale_header

    def ensure_authenticated(self, stale_header: Optional[str] = None) -> str:
        """Make sure a usable token is stored, logging in if needed.

        Args:
            stale_header (str | None): The Authorization value that the API just
                rejected. A stored token with this value is not reused.

        Returns:
            str: The current Authorization header value.

        Raises:
            JetReauthLimitExceeded: If the consecutive login limit was reached.
            JetAuthenticationFailed: If the auth test rejected the new token.
            JetBusinessError: If the login request was rejected.
            JetMalformedLoginResponse: If the login response lacks required fields.
        """
        if self._is_current(stale_header):
            return self._store.authorization_header_value

        generation = self._generation
        logger.debug("Acquiring auth lock")
        if self._lock.acquire(timeout=self.lock_timeout):
            try:
                logger.debug("Auth lock acquired")
                if self._reauthenticating:
                    # Re-entered from the thread already logging in.
                    return self._store.authorization_header_value
                if self._is_current(stale_header):
                    return self._store.authorization_header_value
                self._begin_counted_login()
                self._run_handshake()
                with self._condition:
                    self._reauth_attempts = 0
            finally:
                self._lock.release()
                logger.debug("Auth lock released")
        else:
            logger.debug("Auth lock busy, waiting for the running login to finish")
            with self._condition:
                self._condition.wait_for(
                    lambda: self._generation != generation or self._is_current(stale_header),
                    timeout=self.wait_timeout,
                )
        return self._store.authorization_header_value

    def login(self) -> bool:
        """Log in unconditionally. Not counted against the reauth limit.

        Returns:
            bool: True once the token has been stored and verified.
        """
        with self._lock:
            with self._condition:
                self._reauthenticating = True
            self._run_handshake()
            with self._condition:
                self._reauth_attempts = 0
        return True

    def _begin_counted_login(self) -> None:
        with self._condition:
            if self._reauth_attempts >= self.max_reauth_attempts:
                logger.error(
                    f"Reauthentication limit of {self.max_reauth_attempts} attempts reached"
                )
                raise JetReauthLimitExceeded(self._reauth_attempts)
            self._reauth_attempts += 1
            self._reauthenticating = True

    def _run_handshake(self) -> None:
        """Run the login and auth test, then wake any waiting threads."""
        self._state = AuthState.AUTHENTICATING
        try:
            self._authenticate()
            self._state = AuthState.AUTHENTICATED
        except Exception:
            self._state = AuthState.FAILED
            raise
        finally:
            with self._condition:
                self._reauthenticating = False
                self._generation += 1
                self._condition.notify_all()

    def _authenticate(self) -> None:
        logger.info(f"Authenticating {self._store.username} at {self._store.login_url}")
        response = self._http.call(
            "POST",
            self._store.login_url,
            headers=JetHeaderBuilder.json(self._config).build(),
            body=json.dumps(self._store.login_payload()),
        )
        try:
            check_response(response)
        except JetBusinessError:
            logger.error(
                "Jet rejected the login request. A bad request typically means bad credentials"
            )
            raise

        try:
            payload = response.json()
        except ValueError as e:
            raise JetMalformedLoginResponse() from e
        self._store.apply_login_response(payload)
        try:
            self._store.assert_authenticated()
            logger.info("Login successful, testing authentication")
            passed = self._test_authentication()
        except Exception:
            # An unverified token must not stay usable.
            self._store.clear_authentication_data()
            raise

        if not passed:
            self._store.clear_authentication_data()
            logger.error("Jet rejected the authentication test for the new token")
            raise JetAuthenticationFailed()
        logger.info("Authentication test passed")

    def _test_authentication(self) -> bool:
        headers = JetHeaderBuilder.plain(
            self._config, self._store.authorization_header_value
        ).build()
        response = self._http.call("GET", self._store.auth_test_url, headers=headers)
        return response.text == AUTH_TEST_RESPONSE
