"""
Integration tests for JetClient against a live Jet merchant API.

These tests are disabled by default to prevent them from running during
normal test execution. Credentials are read from the environment:

    JETCLIENT_USERNAME, JETCLIENT_PASSWORD, and optionally JETCLIENT_HOST
    and JETCLIENT_MERCHANT_ID.

To run these tests:
    pytest tests/test_integration.py --run-integration
"""

import os

import pytest

from jetclient import JetClient
from jetclient.config import JetConfig
from jetclient.exceptions import JetBusinessError

pytestmark = pytest.mark.integration


@pytest.fixture
def live_config():
    if not (os.environ.get("JETCLIENT_USERNAME") and os.environ.get("JETCLIENT_PASSWORD")):
        pytest.skip("JETCLIENT_USERNAME and JETCLIENT_PASSWORD must be set")
    return JetConfig.from_env()


@pytest.fixture
def jet_client(live_config):
    with JetClient(config=live_config) as client:
        yield client


def test_login_stores_verified_token(jet_client):
    assert jet_client.login() is True
    assert jet_client.is_authenticated
    token_type = jet_client.credentials.token_type
    assert jet_client.authorization_header_value.startswith(f"{token_type} ")


def test_first_request_logs_in(jet_client):
    response = jet_client.execute("GET", "/orders/ready")
    assert response.status_code == 200
    assert jet_client.is_authenticated


def test_bad_password_is_rejected(live_config):
    with JetClient(password="not-the-password", config=live_config) as client:
        with pytest.raises(JetBusinessError):
            client.login()
        assert not client.is_authenticated
