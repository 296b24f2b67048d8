from __future__ import annotations

from typing import Dict, Mapping, Optional

from jetclient.config import DEFAULT_ACCEPT, DEFAULT_ACCEPT_LANGUAGE, JetConfig

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_PLAIN = "text/plain"


class JetHeaderBuilder:
    """Composes the headers sent with a single Jet request.

    Authorization is only added when an authorization value is supplied, so the
    same builder produces the unauthenticated login headers.
    """

    def __init__(
        self,
        authorization: str = "",
        accept: str = DEFAULT_ACCEPT,
        accept_language: str = DEFAULT_ACCEPT_LANGUAGE,
    ):
        self._headers: Dict[str, str] = {
            "Accept": accept,
            "Accept-Language": accept_language,
        }
        if authorization:
            self._headers["Authorization"] = authorization

    @classmethod
    def from_config(cls, config: JetConfig, authorization: str = "") -> "JetHeaderBuilder":
        return cls(authorization, accept=config.accept, accept_language=config.accept_language)

    @classmethod
    def json(cls, config: JetConfig, authorization: str = "") -> "JetHeaderBuilder":
        return cls.from_config(config, authorization).set_content_type(CONTENT_TYPE_JSON)

    @classmethod
    def plain(cls, config: JetConfig, authorization: str = "") -> "JetHeaderBuilder":
        return cls.from_config(config, authorization).set_content_type(CONTENT_TYPE_PLAIN)

    def set_content_type(self, content_type: str) -> "JetHeaderBuilder":
        self._headers["Content-Type"] = content_type
        return self

    def add(self, name: str, value: str) -> "JetHeaderBuilder":
        self._headers[name] = value
        return self

    def update(self, headers: Optional[Mapping[str, str]]) -> "JetHeaderBuilder":
        """Add caller supplied headers, replacing existing ones case-insensitively."""
        for name, value in (headers or {}).items():
            self.remove(name)
            self._headers[name] = value
        return self

    def remove(self, name: str) -> "JetHeaderBuilder":
        for existing in [k for k in self._headers if k.lower() == name.lower()]:
            del self._headers[existing]
        return self

    def build(self) -> Dict[str, str]:
        return dict(self._headers)
