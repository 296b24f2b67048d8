"""
Pytest configuration for jetclient tests.
"""

import json

import httpx
import pytest

from jetclient.auth import AUTH_TEST_RESPONSE

HOST = "https://jet.example.test/api"
LOGIN_URL = f"{HOST}/Token"
AUTH_TEST_URL = f"{HOST}/authcheck"


def pytest_addoption(parser):
    """Add command line option to enable integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the live Jet API",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: talks to the live Jet API")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class FakeJetServer:
    """httpx.MockTransport handler emulating the Jet login, auth-test and API endpoints.

    API responses are taken from the api_responses queue in order; once it is
    empty every API call answers 200 with {"ok": true}.
    """

    def __init__(self, token="abc", token_type="Bearer", expires_on="2999-01-01T00:00:00Z"):
        self.token = token
        self.token_type = token_type
        self.expires_on = expires_on
        self.login_status = 200
        self.auth_test_body = AUTH_TEST_RESPONSE
        self.api_responses = []
        self.requests = []
        self.login_requests = []
        self.auth_test_requests = []
        self.api_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == LOGIN_URL:
            self.login_requests.append(request)
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"errors": ["bad credentials"]})
            return httpx.Response(
                200,
                json={
                    "id_token": self.token,
                    "token_type": self.token_type,
                    "expires_on": self.expires_on,
                },
            )
        if url == AUTH_TEST_URL:
            self.auth_test_requests.append(request)
            return httpx.Response(200, text=self.auth_test_body)
        self.api_requests.append(request)
        if self.api_responses:
            return self.api_responses.pop(0)
        return httpx.Response(200, json={"ok": True})

    def login_bodies(self):
        return [json.loads(r.content) for r in self.login_requests]


@pytest.fixture
def jet_server():
    return FakeJetServer()


@pytest.fixture
def jet_config():
    from jetclient.config import JetConfig

    return JetConfig(host=HOST, username="user", password="secret", merchant_id="m-1")
