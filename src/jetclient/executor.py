from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from tenacity import RetryCallState, Retrying

from jetclient._httpx import JetHttpClient
from jetclient.auth import JetAuthCoordinator
from jetclient.config import JetConfig
from jetclient.exceptions import (
    JetAuthenticationFailed,
    JetBusinessError,
    JetError,
    JetRateLimitError,
    JetUnauthorizedError,
    _request_of,
    check_response,
)
from jetclient.handlers import HandlerRegistry
from jetclient.headers import CONTENT_TYPE_JSON, JetHeaderBuilder
from jetclient.retry import get_rate_limit_delay, get_remediation_retry_config

logger = logging.getLogger(__name__)

Body = Union[str, bytes, Dict[str, Any], list, None]


@dataclass
class PendingRequest:
    """One logical request and the state carried across its retries.

    Attributes:
        method (str): HTTP method.
        url (str): Absolute URL.
        headers (dict): Caller supplied headers.
        body (str | bytes | None): Encoded request body.
        auth_header (str): Authorization value the last attempt was sent with.
        response (httpx.Response | None): Response to the last attempt, if any.
        attempts (int): HTTP attempts made so far.
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[str, bytes, None] = None
    auth_header: str = ""
    response: Optional[httpx.Response] = None
    attempts: int = 0


def encode_body(
    body: Body, headers: Optional[Mapping[str, str]] = None
) -> tuple[Union[str, bytes, None], Dict[str, str]]:
    """Encode a request body, adding a JSON Content-Type unless one is given."""
    headers = dict(headers or {})
    if body is None:
        return None, headers
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if not any(name.lower() == "content-type" for name in headers):
        headers["Content-Type"] = CONTENT_TYPE_JSON
    return body, headers


class JetRequestExecutor:
    """Runs authenticated requests against the Jet API.

    Each request is retried at most once after a 401 (following
    reauthentication) and at most once after a 429 (following a fixed
    backoff). Everything else is terminal: error observers are notified and the
    exception is raised to the caller.
    """

    def __init__(
        self,
        http: JetHttpClient,
        auth: JetAuthCoordinator,
        config: Optional[JetConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
        *,
        rate_limit_delay: Optional[float] = None,
    ):
        self._http = http
        self._auth = auth
        self._store = auth.store
        self._config = config or JetConfig()
        self.handlers = handlers if handlers is not None else HandlerRegistry()
        self.rate_limit_delay = (
            rate_limit_delay if rate_limit_delay is not None else get_rate_limit_delay()
        )

    def get(self, url: str, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self.execute("GET", url, headers=headers)

    def post(
        self, url: str, body: Body = None, headers: Optional[Mapping[str, str]] = None
    ) -> httpx.Response:
        return self.execute("POST", url, body, headers)

    def put(
        self, url: str, body: Body = None, headers: Optional[Mapping[str, str]] = None
    ) -> httpx.Response:
        return self.execute("PUT", url, body, headers)

    def patch(
        self, url: str, body: Body = None, headers: Optional[Mapping[str, str]] = None
    ) -> httpx.Response:
        return self.execute("PATCH", url, body, headers)

    def delete(self, url: str, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self.execute("DELETE", url, headers=headers)

    def execute(
        self,
        method: str,
        url: str,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Send a request, remediating 401 and 429 responses once each.

        Args:
            method (str): HTTP method.
            url (str): Absolute URL.
            body (str | bytes | dict | list | None): Request body. Dicts and
                lists are sent as JSON.
            headers (Mapping[str, str], optional): Extra headers. Authorization
                is always replaced by the stored token.

        Returns:
            httpx.Response: The successful response.

        Raises:
            JetBusinessError: For error envelopes, HTTP error statuses, and a
                second 401 or 429.
            JetTransportError: For connection, timeout and size failures.
            JetAuthError: For fatal authentication failures.
        """
        encoded, request_headers = encode_body(body, headers)
        pending = PendingRequest(method.upper(), url, request_headers, encoded)
        retrying = Retrying(
            **get_remediation_retry_config(self._remediate, self.rate_limit_delay)
        )
        try:
            return retrying(self._attempt, pending)
        except JetError as e:
            response = e.response if isinstance(e, JetBusinessError) else pending.response
            logger.debug(f"{pending.method} {pending.url} failed after {pending.attempts} attempt(s): {e}")
            self.handlers.notify_error(response, e)
            raise

    def _attempt(self, pending: PendingRequest) -> httpx.Response:
        pending.attempts += 1
        pending.response = None
        if not self._store.is_authenticated():
            self._auth.ensure_authenticated()
        pending.auth_header = self._store.authorization_header_value

        builder = JetHeaderBuilder.json(self._config).update(pending.headers)
        if pending.auth_header:
            builder.update({"Authorization": pending.auth_header})
        response = self._http.call(
            pending.method, pending.url, headers=builder.build(), body=pending.body
        )
        pending.response = response
        return check_response(response)

    def _remediate(self, retry_state: RetryCallState) -> None:
        """Prepare the next attempt after a 401 or 429."""
        pending: PendingRequest = retry_state.args[0]
        error = retry_state.outcome.exception()
        if isinstance(error, JetUnauthorizedError):
            logger.info(f"{pending.method} {pending.url} was rejected with 401, reauthenticating")
            try:
                self._auth.ensure_authenticated(stale_header=pending.auth_header)
            except JetAuthenticationFailed as e:
                raise JetBusinessError(
                    "Failed to reauthenticate",
                    request=_request_of(error),
                    response=error.response,
                ) from e
        elif isinstance(error, JetRateLimitError):
            logger.warning(
                f"{pending.method} {pending.url} was rate limited, retrying in"
                f" {self.rate_limit_delay} seconds"
            )
            self.handlers.notify_rate_limit(error.response)
