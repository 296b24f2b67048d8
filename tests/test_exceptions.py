"""Tests for the exceptions module."""

import json
from unittest.mock import Mock

import httpx
import pytest

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
    JetReauthLimitExceeded,
    # Classification
    check_response,
    error_messages,
    jet_errors,
    _create_jet_exception,
)

REQUEST = httpx.Request("GET", "https://jet.example.test/api/orders")


def make_response(status_code=200, content=None, **kwargs):
    if content is not None:
        kwargs["content"] = content
    return httpx.Response(status_code, request=REQUEST, **kwargs)


class TestJetClientClosed:
    """Test JetClientClosed exception."""

    def test_default_message(self):
        exc = JetClientClosed()
        assert str(exc) == "The JetClient is closed"

    def test_custom_message(self):
        exc = JetClientClosed("Custom message")
        assert str(exc) == "Custom message"


class TestTransportErrors:
    """Test transport-related exceptions."""

    def test_jet_transport_error(self):
        request = Mock(spec=httpx.Request)
        exc = JetTransportError("Connection failed", request=request)
        assert exc.message == "Connection failed"
        assert exc.request == request
        assert str(exc) == "Jet transport error: Connection failed"

    def test_jet_system_unavailable_error(self):
        exc = JetSystemUnavailableError("System down")
        assert str(exc) == "Jet API unavailable: System down"

    def test_jet_timeout_error(self):
        exc = JetTimeoutError("Request timeout")
        assert str(exc) == "Jet request timeout: Request timeout"

    def test_jet_protocol_error(self):
        exc = JetProtocolError("Protocol issue")
        assert str(exc) == "Jet protocol error: Protocol issue"

    def test_jet_network_error(self):
        exc = JetNetworkError("Network issue")
        assert str(exc) == "Jet network error: Network issue"

    def test_response_too_large(self):
        exc = JetResponseTooLargeError(10)
        assert exc.max_size == 10
        assert "10 bytes" in str(exc)


class TestBusinessErrors:
    def test_default_message_and_messages(self):
        response = make_response(400)
        exc = JetBusinessError(request=REQUEST, response=response, messages=["a", "b"])
        assert exc.message == "Jet API Error Response"
        assert exc.messages == ["a", "b"]
        assert exc.status_code == 400
        assert exc.implode_messages() == "a; b"
        assert exc.implode_messages(",") == "a,b"
        assert str(exc) == "Jet API error: Jet API Error Response: a; b (HTTP 400)"

    def test_without_response(self):
        exc = JetBusinessError("Failed to reauthenticate")
        assert exc.status_code is None
        assert exc.messages == []
        assert str(exc) == "Jet API error: Failed to reauthenticate"

    def test_retry_errors_are_business_errors(self):
        response = make_response(401)
        exc = JetUnauthorizedError("Unauthorized", request=REQUEST, response=response)
        assert isinstance(exc, JetBusinessError)
        assert isinstance(exc, httpx.HTTPStatusError)
        assert str(exc) == "Jet authorization rejected: Unauthorized"
        assert isinstance(
            JetRateLimitError("Too Many Requests", request=REQUEST, response=make_response(429)),
            JetBusinessError,
        )


class TestAuthErrors:
    def test_invalid_credentials_format_is_value_error(self):
        exc = JetInvalidCredentialsFormat("token can't be empty")
        assert isinstance(exc, ValueError)
        assert isinstance(exc, JetAuthError)

    def test_not_authenticated_default_message(self):
        assert "Not authenticated" in str(JetNotAuthenticatedError())

    def test_reauth_limit_exceeded(self):
        exc = JetReauthLimitExceeded(5)
        assert exc.attempts == 5
        assert str(exc).startswith("5 attempts to reauthenticate have failed")


class TestErrorMessages:
    def test_errors_array(self):
        response = make_response(400, json={"errors": ["bad sku", "bad price"]})
        assert error_messages(response) == ["bad sku", "bad price"]

    def test_error_string(self):
        response = make_response(200, json={"error": "nope"})
        assert error_messages(response) == ["nope"]

    def test_non_string_entries_are_json_encoded(self):
        response = make_response(400, json={"errors": [{"code": 7}, 3]})
        assert error_messages(response) == [json.dumps({"code": 7}), "3"]

    def test_leading_whitespace_ignored(self):
        response = make_response(200, content=b'  \n{"error": "late"}')
        assert error_messages(response) == ["late"]

    def test_array_body_is_not_an_envelope(self):
        response = make_response(200, json=[{"errors": ["x"]}])
        assert error_messages(response) is None

    def test_plain_text_body(self):
        response = make_response(200, text='"This message is authorized."')
        assert error_messages(response) is None

    def test_malformed_json(self):
        response = make_response(200, content=b"{not json")
        assert error_messages(response) is None

    def test_object_without_error_keys(self):
        response = make_response(200, json={"order_urls": []})
        assert error_messages(response) is None


class TestCheckResponse:
    def test_success_returns_response(self):
        response = make_response(200, json={"ok": True})
        assert check_response(response) is response

    def test_empty_body_success(self):
        response = make_response(204)
        assert check_response(response) is response

    def test_401_raises_unauthorized(self):
        response = make_response(401, json={"errors": ["expired"]})
        with pytest.raises(JetUnauthorizedError) as exc_info:
            check_response(response)
        assert exc_info.value.messages == ["expired"]
        assert exc_info.value.response is response

    def test_429_raises_rate_limit(self):
        with pytest.raises(JetRateLimitError):
            check_response(make_response(429))

    def test_envelope_on_200_raises_business_error(self):
        response = make_response(200, json={"errors": ["bad sku"]})
        with pytest.raises(JetBusinessError) as exc_info:
            check_response(response)
        assert type(exc_info.value) is JetBusinessError
        assert exc_info.value.messages == ["bad sku"]

    def test_error_status_without_envelope(self):
        with pytest.raises(JetBusinessError) as exc_info:
            check_response(make_response(500, text="Server exploded"))
        assert exc_info.value.status_code == 500
        assert exc_info.value.messages == []


class TestJetErrorsDecorator:
    def test_success(self):
        @jet_errors
        def test_function():
            return "success"

        assert test_function() == "success"

    def test_connection_error(self):
        request = Mock(spec=httpx.Request)

        @jet_errors
        def test_function():
            raise httpx.ConnectError("Connection failed", request=request)

        with pytest.raises(JetSystemUnavailableError) as exc_info:
            test_function()

        assert exc_info.value.request == request
        assert exc_info.value.__cause__.__class__ == httpx.ConnectError

    @pytest.mark.parametrize(
        "httpx_error, jet_error",
        [
            (httpx.ReadTimeout, JetTimeoutError),
            (httpx.ConnectTimeout, JetTimeoutError),
            (httpx.RemoteProtocolError, JetProtocolError),
            (httpx.ReadError, JetNetworkError),
        ],
    )
    def test_error_mapping(self, httpx_error, jet_error):
        @jet_errors
        def test_function():
            raise httpx_error("boom", request=REQUEST)

        with pytest.raises(jet_error):
            test_function()

    def test_jet_errors_pass_through(self):
        original = JetResponseTooLargeError(5)

        @jet_errors
        def test_function():
            raise original

        with pytest.raises(JetResponseTooLargeError) as exc_info:
            test_function()
        assert exc_info.value is original

    def test_preserves_other_exceptions(self):
        @jet_errors
        def test_function():
            raise ValueError("Some other error")

        with pytest.raises(ValueError):
            test_function()

    def test_decorator_preserves_function_metadata(self):
        @jet_errors
        def test_function():
            """Test docstring."""
            return "test"

        assert test_function.__name__ == "test_function"
        assert test_function.__doc__ == "Test docstring."

    def test_unmapped_request_error(self):
        exc = _create_jet_exception(httpx.UnsupportedProtocol("ftp", request=REQUEST))
        assert type(exc) is JetTransportError
        assert "Connection error" in str(exc)


class TestInheritance:
    def test_transport_error_inheritance(self):
        exc = JetSystemUnavailableError("Test")
        assert isinstance(exc, httpx.RequestError)
        assert isinstance(exc, JetError)

    def test_timeout_error_inheritance(self):
        exc = JetTimeoutError("Test")
        assert isinstance(exc, httpx.TimeoutException)
        assert isinstance(exc, httpx.RequestError)
        assert isinstance(exc, JetError)
