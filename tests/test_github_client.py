from __future__ import annotations

import base64
import json

import httpx
import pytest

from gitclock.config import GitHubConfig
from gitclock.errors import RemoteConflict, RemoteNotFound, RemoteTransportError
from gitclock.github import GitHubClient


def _client(handler) -> GitHubClient:  # noqa: ANN001
    return GitHubClient(
        token="t0ken",
        config=GitHubConfig(api_url="https://api.example.test"),
        transport=httpx.MockTransport(handler),
    )


def test_read_file_decodes_content_and_revision() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        encoded = base64.encodebytes("héllo\n".encode("utf-8")).decode("ascii")
        return httpx.Response(
            200,
            json={"path": "log.md", "sha": "abc", "content": encoded, "encoding": "base64"},
        )

    with _client(handler) as client:
        remote = client.read_file("octocat", "gitclock-log", "log.md")

    assert remote is not None
    assert remote.content == "héllo\n".encode("utf-8")
    assert remote.revision == "abc"
    assert seen[0].url.path == "/repos/octocat/gitclock-log/contents/log.md"
    assert seen[0].headers["Authorization"] == "Bearer t0ken"


def test_read_file_not_found_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    with _client(handler) as client:
        assert client.read_file("octocat", "gitclock-log", "log.md") is None


def test_update_file_sends_sha_and_base64_content() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"content": {"sha": "new"}})

    with _client(handler) as client:
        client.update_file("octocat", "gitclock-log", "log.md", b"text", "abc", "msg")

    assert bodies == [
        {"message": "msg", "content": base64.b64encode(b"text").decode("ascii"), "sha": "abc"}
    ]


def test_create_file_omits_sha() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"content": {"sha": "new"}})

    with _client(handler) as client:
        client.create_file("octocat", "gitclock-log", "log.md", b"text", "msg")

    assert "sha" not in bodies[0]


def test_stale_sha_raises_conflict() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"message": "log.md does not match abc"})

    with _client(handler) as client, pytest.raises(RemoteConflict):
        client.update_file("octocat", "gitclock-log", "log.md", b"text", "abc", "msg")


def test_create_racing_another_writer_raises_conflict() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Invalid request. \"sha\" wasn't supplied."})

    with _client(handler) as client, pytest.raises(RemoteConflict):
        client.create_file("octocat", "gitclock-log", "log.md", b"text", "msg")


def test_auth_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with _client(handler) as client, pytest.raises(RemoteTransportError) as info:
        client.get_login()

    assert info.value.status_code == 401
    assert "Bad credentials" in str(info.value)


def test_network_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client, pytest.raises(RemoteTransportError):
        client.read_file("octocat", "gitclock-log", "log.md")


def test_get_login_is_cached() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"login": "octocat", "id": 1})

    with _client(handler) as client:
        assert client.get_login() == "octocat"
        assert client.get_login() == "octocat"

    assert calls == ["/user"]


def test_get_repository_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    with _client(handler) as client, pytest.raises(RemoteNotFound):
        client.get_repository("octocat", "missing")
