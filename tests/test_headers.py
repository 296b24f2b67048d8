from jetclient.config import JetConfig
from jetclient.headers import JetHeaderBuilder


def test_no_authorization_when_empty():
    headers = JetHeaderBuilder().build()
    assert "Authorization" not in headers
    assert headers["Accept"] == "application/json"
    assert headers["Accept-Language"] == "en-US"


def test_authorization_added():
    headers = JetHeaderBuilder("Bearer abc").build()
    assert headers["Authorization"] == "Bearer abc"


def test_json_and_plain_from_config():
    config = JetConfig(accept="application/vnd.jet+json", accept_language="fr-CA")
    json_headers = JetHeaderBuilder.json(config).build()
    assert json_headers["Content-Type"] == "application/json"
    assert json_headers["Accept"] == "application/vnd.jet+json"
    assert json_headers["Accept-Language"] == "fr-CA"
    plain_headers = JetHeaderBuilder.plain(config, "Bearer abc").build()
    assert plain_headers["Content-Type"] == "text/plain"
    assert plain_headers["Authorization"] == "Bearer abc"


def test_update_replaces_case_insensitively():
    builder = JetHeaderBuilder("Bearer abc").update({"authorization": "Basic zzz", "X-Trace": "1"})
    headers = builder.build()
    assert "Authorization" not in headers
    assert headers["authorization"] == "Basic zzz"
    assert headers["X-Trace"] == "1"


def test_add_and_remove():
    builder = JetHeaderBuilder().add("X-Merchant", "m-1").remove("accept")
    headers = builder.build()
    assert headers == {"Accept-Language": "en-US", "X-Merchant": "m-1"}


def test_build_returns_copy():
    builder = JetHeaderBuilder()
    headers = builder.build()
    headers["Accept"] = "text/html"
    assert builder.build()["Accept"] == "application/json"
