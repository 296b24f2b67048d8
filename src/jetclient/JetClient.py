from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

import httpx

from jetclient._httpx import JetHttpClient
from jetclient.auth import (
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_MAX_REAUTH_ATTEMPTS,
    DEFAULT_WAIT_TIMEOUT,
    JetAuthCoordinator,
)
from jetclient.config import JetConfig
from jetclient.credentials import CredentialStore
from jetclient.exceptions import JetClientClosed
from jetclient.executor import Body, JetRequestExecutor
from jetclient.handlers import ErrorHandler, HandlerRegistry, RateLimitHandler

logger = logging.getLogger("JetClient")


class JetClient:
    """A Python client for the Jet merchant API

    The client logs in with the merchant API user and secret, keeps the issued
    bearer token, and transparently reauthenticates when Jet rejects it. Calls
    that are rate limited are retried once after a fixed backoff.

    Initialization:
        JetClient is designed to be used as a context manager

        >>> from jetclient import JetClient
        >>> with JetClient("api-user", "api-secret", merchant_id="m-1") as jet_client:
        ...     skus = jet_client.jet_get("/merchant-skus")

    Parameters:
        username (str): The Jet API user. Defaults to config.username.
        password (str): The Jet API secret. Defaults to config.password.
        merchant_id (str, optional): The merchant id.
        host (str, optional): The API base URL.
        config (JetConfig, optional), keyword-only: Full connection settings.
            Positional values above override it when given.
        transport (httpx.BaseTransport, optional), keyword-only: Transport for the
            underlying httpx.Client.
        lock_timeout, wait_timeout, max_reauth_attempts, keyword-only: Passed to
            JetAuthCoordinator.
        rate_limit_delay (float, optional), keyword-only: Seconds to wait after 429.
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        merchant_id: Optional[str] = None,
        host: Optional[str] = None,
        *,
        config: Optional[JetConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        wait_timeout: Optional[float] = DEFAULT_WAIT_TIMEOUT,
        max_reauth_attempts: int = DEFAULT_MAX_REAUTH_ATTEMPTS,
        rate_limit_delay: Optional[float] = None,
    ):
        overrides = {
            name: value
            for name, value in (
                ("username", username),
                ("password", password),
                ("merchant_id", merchant_id),
                ("host", host),
            )
            if value is not None
        }
        if config is None:
            config = JetConfig(**overrides)
        elif overrides:
            config = replace(config, **overrides)
        self.config: JetConfig = config

        self.credentials = CredentialStore.from_config(config)
        self.handlers = HandlerRegistry()
        self.http_client = JetHttpClient(config, transport=transport)
        self.auth = JetAuthCoordinator(
            self.http_client,
            self.credentials,
            config,
            lock_timeout=lock_timeout,
            wait_timeout=wait_timeout,
            max_reauth_attempts=max_reauth_attempts,
        )
        self.executor = JetRequestExecutor(
            self.http_client,
            self.auth,
            config,
            self.handlers,
            rate_limit_delay=rate_limit_delay,
        )
        self.is_closed = False

    def __repr__(self) -> str:
        return f"JetClient for merchant {self.merchant_id!r} at {self.host} as {self.username}"

    def __enter__(self):
        """Context manager entry for JetClient.

        Returns:
            JetClient: The JetClient instance.
        """
        self.validate_client_open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        """Context manager exit method.

        Closes the underlying httpx.Client, drops the stored token, and marks
        the JetClient instance as closed.
        """
        if not self.http_client.is_closed:
            self.http_client.close()
        self.credentials.clear_authentication_data()
        self.is_closed = True
        logger.debug("JetClient closed")

    def close(self) -> None:
        """Manually close the JetClient object.

        This should only be used when running JetClient outside a context manager.
        """
        self.__exit__(None, None, None)

    def validate_client_open(self):
        if self.is_closed:
            raise JetClientClosed()

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def username(self) -> str:
        return self.config.username

    @property
    def merchant_id(self) -> str:
        return self.config.merchant_id

    @property
    def is_authenticated(self) -> bool:
        return self.credentials.is_authenticated()

    @property
    def authorization_header_value(self) -> str:
        """The current Authorization header value, or "" when not logged in."""
        return self.credentials.authorization_header_value

    def login(self) -> bool:
        """Log in to Jet and verify the issued token against the auth-test endpoint.

        Calling this is optional: the first request logs in when needed.

        Raises:
            JetBusinessError: If Jet rejects the credentials.
            JetAuthenticationFailed: If the issued token fails the auth test.
            JetMalformedLoginResponse: If the login response is incomplete.
        """
        self.validate_client_open()
        return self.auth.login()

    def add_error_handler(self, handler: ErrorHandler) -> None:
        """Register a callable invoked as handler(response_or_None, error) on failures."""
        self.handlers.add_error_handler(handler)

    def add_rate_limit_handler(self, handler: RateLimitHandler) -> None:
        """Register a callable invoked as handler(response) when Jet answers 429."""
        self.handlers.add_rate_limit_handler(handler)

    def jet_url(
        self,
        path: str,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Build the absolute URL for a path or named template.

        Args:
            path (str): Path relative to the host, absolute URL, or the name of
                one of config.url_templates.
            path_params (dict, optional): Values for {placeholder}s in the path.
            query_params (dict, optional): Query string parameters.
        """
        url = self.config.build_url(path, **(path_params or {}))
        if query_params:
            url = str(httpx.URL(url, params=query_params))
        return url

    def execute(
        self,
        method: str,
        path: str,
        payload: Body = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request and return the raw httpx.Response."""
        self.validate_client_open()
        url = self.jet_url(path, path_params, query_params)
        return self.executor.execute(method, url, payload, headers)

    def jet_get(
        self,
        path: str,
        key: Optional[str] = None,
        *,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Fetches data from Jet and returns it as a JSON object.

        Args:
            path (str): Jet API endpoint path or template name.
            key (str, optional): Key in the JSON response to return. Defaults to None.
            path_params (dict, optional): Values for {placeholder}s in the path.
            query_params (dict, optional): Query string parameters.
            headers (dict, optional): Extra request headers.

        Returns:
            Any: The value matching key or the whole decoded JSON body.

        Raises:
            JetBusinessError: For error envelopes and HTTP error statuses.
            JetTransportError: For network connectivity issues.
        """
        response = self.execute(
            "GET", path, headers=headers, path_params=path_params, query_params=query_params
        )
        return self.extract_response_data(response, key)

    def jet_post(
        self,
        path: str,
        payload: Body = None,
        *,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Convenience method to post data to Jet.

        Returns:
            The decoded JSON response, or None if the response is empty.
        """
        response = self.execute(
            "POST",
            path,
            payload,
            headers=headers,
            path_params=path_params,
            query_params=query_params,
        )
        return self.handle_json_response(response)

    def jet_put(
        self,
        path: str,
        payload: Body = None,
        *,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Convenience method to update data in Jet.

        Returns:
            The decoded JSON response, or None if the response is empty.
        """
        response = self.execute(
            "PUT",
            path,
            payload,
            headers=headers,
            path_params=path_params,
            query_params=query_params,
        )
        return self.handle_json_response(response)

    def jet_patch(
        self,
        path: str,
        payload: Body = None,
        *,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = self.execute(
            "PATCH",
            path,
            payload,
            headers=headers,
            path_params=path_params,
            query_params=query_params,
        )
        return self.handle_json_response(response)

    def jet_delete(
        self,
        path: str,
        *,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = self.execute(
            "DELETE", path, headers=headers, path_params=path_params, query_params=query_params
        )
        return self.handle_json_response(response)

    @staticmethod
    def handle_json_response(response: httpx.Response) -> Any:
        """Decode a JSON response body.

        Returns:
            Any: The parsed JSON data, or None if the body is empty or not JSON.
        """
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def extract_response_data(self, response: httpx.Response, key: Optional[str]) -> Any:
        json_data = self.handle_json_response(response)
        return json_data[key] if key and json_data else json_data
