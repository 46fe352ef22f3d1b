from __future__ import annotations

import json
import socket
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from gitclock.config import GitHubConfig
from gitclock.errors import AuthorizationError
from gitclock.oauth import (
    AuthorizationHandshake,
    CallbackListener,
    build_authorize_url,
    exchange_code,
)


def _listener(timeout_seconds: float = 5) -> CallbackListener:
    return CallbackListener(
        host="127.0.0.1", port=5000, path="/oauthCallback", timeout_seconds=timeout_seconds
    )


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _token_transport(payload: dict, seen: list[httpx.Request] | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def test_callback_without_code_is_rejected() -> None:
    listener = _listener()
    client = TestClient(listener.app)

    res = client.get("/oauthCallback")

    assert res.status_code == 400
    assert res.text == "Error: No code received."
    assert listener.result is None


def test_first_callback_wins_and_later_ones_are_refused() -> None:
    listener = _listener()
    client = TestClient(listener.app)

    first = client.get("/oauthCallback", params={"code": "abc", "state": "s1"})
    second = client.get("/oauthCallback", params={"code": "xyz", "state": "s1"})

    assert first.status_code == 200
    assert "close this window" in first.text
    assert second.status_code == 409
    assert listener.result is not None
    assert listener.result.code == "abc"
    assert listener.wait().code == "abc"


def test_provider_error_is_reported() -> None:
    listener = _listener()
    client = TestClient(listener.app)

    res = client.get(
        "/oauthCallback",
        params={"error": "access_denied", "error_description": "The user denied access"},
    )

    assert res.status_code == 400
    with pytest.raises(AuthorizationError, match="denied"):
        listener.wait()


def test_other_paths_are_not_served() -> None:
    client = TestClient(_listener().app)
    assert client.get("/").status_code == 404


def test_wait_times_out_without_callback() -> None:
    listener = _listener(timeout_seconds=0.05)
    with pytest.raises(AuthorizationError, match="No login callback"):
        listener.wait()
    # Shutting down again is harmless.
    listener.shutdown()


def test_authorize_url_carries_client_redirect_and_state() -> None:
    config = GitHubConfig(client_id="cid")
    url = urlsplit(build_authorize_url(config, state="xyz"))
    params = parse_qs(url.query)

    assert url.netloc == "github.com"
    assert params["client_id"] == ["cid"]
    assert params["redirect_uri"] == ["http://localhost:5000/oauthCallback"]
    assert params["scope"] == ["repo"]
    assert params["state"] == ["xyz"]


def test_authorize_url_requires_client_id() -> None:
    with pytest.raises(AuthorizationError):
        build_authorize_url(GitHubConfig(), state="x")


def test_exchange_code_posts_credentials_and_returns_token() -> None:
    seen: list[httpx.Request] = []
    config = GitHubConfig(client_id="cid", client_secret="secret")

    token = exchange_code(
        config, "the-code", transport=_token_transport({"access_token": "tok"}, seen)
    )

    assert token == "tok"
    body = json.loads(seen[0].content)
    assert body == {
        "client_id": "cid",
        "client_secret": "secret",
        "code": "the-code",
        "redirect_uri": "http://localhost:5000/oauthCallback",
    }
    assert seen[0].headers["accept"] == "application/json"


def test_exchange_code_surfaces_provider_error() -> None:
    config = GitHubConfig(client_id="cid", client_secret="secret")
    transport = _token_transport(
        {"error": "bad_verification_code", "error_description": "The code is incorrect"}
    )

    with pytest.raises(AuthorizationError, match="The code is incorrect"):
        exchange_code(config, "stale", transport=transport)


def test_exchange_code_wraps_http_failures() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(AuthorizationError, match="exchanging code"):
        exchange_code(GitHubConfig(client_id="c", client_secret="s"), "x", transport=transport)


def test_handshake_requires_client_credentials() -> None:
    opened: list[str] = []
    handshake = AuthorizationHandshake(GitHubConfig(client_id="cid"), open_browser=opened.append)

    with pytest.raises(AuthorizationError, match="client id and secret"):
        handshake.run()
    assert opened == []


def test_handshake_end_to_end_over_local_listener() -> None:
    port = _free_port()
    config = GitHubConfig(
        client_id="cid",
        client_secret="secret",
        redirect_uri=f"http://127.0.0.1:{port}/oauthCallback",
        auth_timeout_seconds=10,
    )

    def browser(url: str) -> None:
        # Play the provider: redirect back with a code and the same state.
        state = parse_qs(urlsplit(url).query)["state"][0]
        res = httpx.get(config.redirect_uri, params={"code": "c0de", "state": state})
        assert res.status_code == 200

    handshake = AuthorizationHandshake(
        config,
        open_browser=browser,
        transport=_token_transport({"access_token": "gho_token"}),
    )

    assert handshake.run() == "gho_token"


def test_handshake_rejects_mismatched_state() -> None:
    port = _free_port()
    config = GitHubConfig(
        client_id="cid",
        client_secret="secret",
        redirect_uri=f"http://127.0.0.1:{port}/oauthCallback",
        auth_timeout_seconds=10,
    )

    def browser(url: str) -> None:
        httpx.get(config.redirect_uri, params={"code": "c0de", "state": "forged"})

    handshake = AuthorizationHandshake(
        config,
        open_browser=browser,
        transport=_token_transport({"access_token": "gho_token"}),
    )

    with pytest.raises(AuthorizationError, match="state"):
        handshake.run()
