from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

import httpx

from jetclient.config import JetConfig
from jetclient.exceptions import JetResponseTooLargeError, jet_errors

logger = logging.getLogger(__name__)

RequestBody = Union[str, bytes, None]


class JetHttpClient:
    """Thin synchronous HTTP layer used by the auth coordinator and the executor.

    Wraps a single httpx.Client configured from a JetConfig (timeouts, SSL
    verification) and caps the size of every response body it reads.
    """

    def __init__(
        self,
        config: JetConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._config = config
        self.max_download_size = config.max_download_size
        self._client = httpx.Client(
            timeout=config.timeout,
            verify=config.ssl_verify,
            transport=transport,
        )

    def __enter__(self) -> "JetHttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def close(self) -> None:
        if not self._client.is_closed:
            self._client.close()

    @jet_errors
    def call(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: RequestBody = None,
    ) -> httpx.Response:
        """Send one request and return the fully read response.

        The status code is not inspected here; classification happens in
        check_response.

        Args:
            method (str): The HTTP method.
            url (str): The absolute URL.
            headers (Mapping[str, str]): Request headers.
            body (str | bytes | None): The request body.

        Returns:
            httpx.Response: The response, with its decoded content already loaded.

        Raises:
            JetTransportError: On connection, timeout or protocol failures.
            JetResponseTooLargeError: If the body exceeds max_download_size.
        """
        content = body.encode("utf-8") if isinstance(body, str) else body
        logger.debug(f"{method} {url}")
        with self._client.stream(
            method, url, headers=dict(headers or {}), content=content
        ) as streamed:
            raw = bytearray()
            for chunk in streamed.iter_bytes():
                raw.extend(chunk)
                if self.max_download_size and len(raw) > self.max_download_size:
                    raise JetResponseTooLargeError(
                        self.max_download_size, request=streamed.request
                    )
            logger.debug(f"{method} {url} -> {streamed.status_code} ({len(raw)} bytes)")
            # Body is already decoded; the rebuilt response must not decode it again.
            response_headers = httpx.Headers(streamed.headers)
            response_headers.pop("Content-Encoding", None)
            response_headers.pop("Content-Length", None)
            return httpx.Response(
                streamed.status_code,
                headers=response_headers,
                content=bytes(raw),
                request=streamed.request,
            )
