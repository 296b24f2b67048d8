from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx

DEFAULT_HOST = "https://merchant-api.jet.com/api"
DEFAULT_READ_TIMEOUT = 10.0
DEFAULT_MAX_DOWNLOAD_SIZE = 20971520
DEFAULT_ACCEPT = "application/json"
DEFAULT_ACCEPT_LANGUAGE = "en-US"

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class JetConfig:
    """Parameters required to connect to the Jet merchant API.

    Attributes:
        host (str): The base URL of the Jet API.
        username (str): The API user.
        password (str): The API secret.
        merchant_id (str): The merchant id.
        uri_token (str): Login endpoint, relative to host.
        uri_auth_test (str): Auth-test endpoint, relative to host.
        read_timeout (float): Read timeout in seconds.
        connect_timeout (float | None): Connect timeout in seconds, defaults to
            read_timeout.
        max_download_size (int): Maximum response body size in bytes.
        accept (str): Accept header value.
        accept_language (str): Accept-Language header value.
        ssl_verify (bool): Whether to verify SSL certificates.
        lock_host (bool): Prefix relative URLs with host.
        url_templates (dict): Named endpoint templates with {placeholder}s.
    """

    host: str = DEFAULT_HOST
    username: str = ""
    password: str = ""
    merchant_id: str = ""
    uri_token: str = "/Token"
    uri_auth_test: str = "/authcheck"
    read_timeout: float = DEFAULT_READ_TIMEOUT
    connect_timeout: float | None = None
    max_download_size: int = DEFAULT_MAX_DOWNLOAD_SIZE
    accept: str = DEFAULT_ACCEPT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    ssl_verify: bool = True
    lock_host: bool = True
    url_templates: Dict[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        for name in ("host", "uri_token", "uri_auth_test", "accept", "accept_language"):
            if not getattr(self, name).strip():
                raise ValueError(f"{name} cannot be empty")
        if self.read_timeout < 0:
            raise ValueError("read_timeout cannot be less than zero")
        if self.connect_timeout is not None and self.connect_timeout < 0:
            raise ValueError("connect_timeout cannot be less than zero")
        if self.max_download_size < 0:
            raise ValueError("max_download_size cannot be less than zero")

    def __repr__(self) -> str:
        return (
            f"JetConfig(host={self.host!r}, username={self.username!r},"
            f" merchant_id={self.merchant_id!r})"
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> "JetConfig":
        """Build a JetConfig from JETCLIENT_* environment variables.

        Keyword arguments take precedence over the environment.
        """
        env = os.environ
        values: Dict[str, Any] = {}
        for name in ("host", "username", "password", "merchant_id", "accept", "accept_language"):
            env_name = f"JETCLIENT_{name.upper()}"
            if env_name in env:
                values[name] = env[env_name]
        if "JETCLIENT_READ_TIMEOUT" in env:
            values["read_timeout"] = float(env["JETCLIENT_READ_TIMEOUT"])
        if "JETCLIENT_CONNECT_TIMEOUT" in env:
            values["connect_timeout"] = float(env["JETCLIENT_CONNECT_TIMEOUT"])
        if "JETCLIENT_MAX_DOWNLOAD_SIZE" in env:
            values["max_download_size"] = int(env["JETCLIENT_MAX_DOWNLOAD_SIZE"])
        if "JETCLIENT_ALLOW_UNTRUSTED_SSL" in env:
            values["ssl_verify"] = not _env_bool(env["JETCLIENT_ALLOW_UNTRUSTED_SSL"])
        values.update(overrides)
        return cls(**values)

    @property
    def timeout(self) -> httpx.Timeout:
        """The httpx.Timeout built from read_timeout and connect_timeout."""
        connect = self.read_timeout if self.connect_timeout is None else self.connect_timeout
        return httpx.Timeout(self.read_timeout, connect=connect)

    @property
    def authentication_url(self) -> str:
        return self.build_url(self.uri_token)

    @property
    def auth_test_url(self) -> str:
        return self.build_url(self.uri_auth_test)

    def build_url(self, uri: str, **placeholders: Any) -> str:
        """Substitute {placeholder}s in uri and prefix the host for relative URIs.

        Args:
            uri (str): A URI, a URL, or the name of an entry in url_templates.
            **placeholders: Values for the {placeholder}s in the template.

        Raises:
            KeyError: If a placeholder has no value.
        """
        template = self.url_templates.get(uri, uri)

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in placeholders:
                raise KeyError(f"Missing value for URL placeholder {{{name}}} in {template}")
            return str(placeholders[name])

        url = _PLACEHOLDER.sub(substitute, template).replace(" ", "%20")
        if not self.lock_host or url.startswith(("http://", "https://")):
            return url
        return f"{self.host.rstrip('/')}/{url.lstrip('/')}"
