"""Thread-safe storage for the Jet bearer token and login credentials."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from jetclient.config import JetConfig
from jetclient.exceptions import (
    JetAuthExpiredError,
    JetAuthStateCorrupt,
    JetInvalidCredentialsFormat,
    JetMalformedLoginResponse,
    JetNotAuthenticatedError,
)

logger = logging.getLogger(__name__)

EXPIRES_ON_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

LOGIN_RESPONSE_KEYS = ("id_token", "token_type", "expires_on")


def parse_expires_on(expires_on: str) -> datetime:
    """Parse a Jet expires_on value (yyyy-MM-ddTHH:mm:ssZ) into an aware UTC datetime."""
    return datetime.strptime(expires_on, EXPIRES_ON_FORMAT).replace(tzinfo=timezone.utc)


class CredentialStore:
    """Holds the current token, token type, expiry and derived Authorization value.

    The Authorization value is always ``f"{token_type} {token}"`` while a token
    is stored, and the empty string otherwise. All mutation happens under an
    internal lock so readers never observe a half-replaced token.
    """

    def __init__(
        self,
        username: str,
        password: str,
        login_url: str,
        auth_test_url: str,
        merchant_id: str = "",
    ):
        self.username = username
        self.password = password
        self.login_url = login_url
        self.auth_test_url = auth_test_url
        self.merchant_id = merchant_id
        self._lock = threading.Lock()
        self._token = ""
        self._token_type = ""
        self._expires_at: Optional[datetime] = datetime.now(tz=timezone.utc)
        self._auth_header_value = ""

    @classmethod
    def from_config(cls, config: JetConfig) -> "CredentialStore":
        return cls(
            username=config.username,
            password=config.password,
            login_url=config.authentication_url,
            auth_test_url=config.auth_test_url,
            merchant_id=config.merchant_id,
        )

    def __repr__(self) -> str:
        return (
            f"CredentialStore(username={self.username!r}, token_type={self._token_type!r},"
            f" expires_at={self._expires_at!r})"
        )

    @property
    def token(self) -> str:
        return self._token

    @property
    def token_type(self) -> str:
        return self._token_type

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    @property
    def authorization_header_value(self) -> str:
        return self._auth_header_value

    def get_authorization_header_value(self) -> str:
        return self._auth_header_value

    def login_payload(self) -> Dict[str, str]:
        """The JSON body sent to the login endpoint."""
        return {"user": self.username, "pass": self.password}

    def set_authentication_data(self, token: str, token_type: str, expires_on: str) -> None:
        """Store the result of a successful login.

        Args:
            token (str): The id_token from the login response.
            token_type (str): The token_type from the login response, e.g. "Bearer".
            expires_on (str): The expiry in yyyy-MM-ddTHH:mm:ssZ form.

        Raises:
            JetInvalidCredentialsFormat: If token or token_type is empty, or
                expires_on cannot be parsed.
        """
        if not isinstance(token, str) or not token.strip():
            raise JetInvalidCredentialsFormat("token can't be empty")
        if not isinstance(token_type, str) or not token_type.strip():
            raise JetInvalidCredentialsFormat("token_type can't be empty")
        try:
            expires_at = parse_expires_on(expires_on)
        except (TypeError, ValueError) as e:
            raise JetInvalidCredentialsFormat(
                f"Failed to convert {expires_on!r} to a datetime"
            ) from e

        with self._lock:
            self._token = token
            self._token_type = token_type
            self._expires_at = expires_at
            self._auth_header_value = f"{token_type} {token}"
        logger.debug(f"Stored {token_type} token expiring at {expires_at.isoformat()}")

    def apply_login_response(self, payload: Mapping[str, Any]) -> None:
        """Store the token from a decoded login response body.

        Raises:
            JetMalformedLoginResponse: If id_token, token_type or expires_on is missing.
            JetInvalidCredentialsFormat: If any of them is unusable.
        """
        if not isinstance(payload, Mapping) or any(
            payload.get(key) is None for key in LOGIN_RESPONSE_KEYS
        ):
            raise JetMalformedLoginResponse()
        self.set_authentication_data(
            payload["id_token"], payload["token_type"], payload["expires_on"]
        )

    def clear_authentication_data(self) -> None:
        with self._lock:
            self._token = ""
            self._token_type = ""
            self._expires_at = datetime.now(tz=timezone.utc)
            self._auth_header_value = ""

    def is_authenticated(self) -> bool:
        with self._lock:
            token, expires_at = self._token, self._expires_at
        return bool(token) and expires_at is not None and datetime.now(tz=timezone.utc) < expires_at

    def assert_authenticated(self) -> None:
        """Raise unless a usable token is stored.

        Raises:
            JetNotAuthenticatedError: No token is stored.
            JetAuthStateCorrupt: The expiry is missing.
            JetAuthExpiredError: The token has expired.
        """
        with self._lock:
            token, expires_at = self._token, self._expires_at
        if not token:
            raise JetNotAuthenticatedError()
        if not isinstance(expires_at, datetime):
            raise JetAuthStateCorrupt()
        if expires_at <= datetime.now(tz=timezone.utc):
            raise JetAuthExpiredError(f"Authorization expired at {expires_at.isoformat()}")
