"""Hosting service REST client.

Covers the calls GitClock needs: the authenticated user, repository lookup
and creation, and the repository contents endpoint (read, create, update).
HTTP failures are raised as `RemoteError` subclasses.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .config import GitHubConfig
from .errors import RemoteConflict, RemoteNotFound, RemoteTransportError
from .models import ContentFile, RemoteFile, RepositoryInfo, UserInfo

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


class GitHubClient:
    """Thin synchronous client over httpx.

    Example:
        with GitHubClient(token=token, config=config.github) as client:
            remote = client.read_file("me", "gitclock-log", "gitclock.md")
    """

    def __init__(
        self,
        *,
        token: str,
        config: GitHubConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=config.api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "gitclock",
            },
            timeout=config.timeout_seconds,
            transport=transport,
        )
        self._login: str | None = None

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteTransportError(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.is_success:
            return response

        message = f"{method} {url} -> {response.status_code}: {_error_message(response)}"
        if response.status_code == 404:
            raise RemoteNotFound(message, status_code=404)
        if response.status_code in (409, 412):
            raise RemoteConflict(message, status_code=response.status_code)
        raise RemoteTransportError(message, status_code=response.status_code)

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteTransportError(
                f"Unexpected non-JSON response from {response.request.url}"
            ) from exc

    # -------------------------------------------------------------------------
    # Users and repositories
    # -------------------------------------------------------------------------

    def get_login(self) -> str:
        """Return the authenticated user's login (cached per client)."""
        if self._login is None:
            payload = self._json(self._request("GET", "/user"))
            try:
                self._login = UserInfo.model_validate(payload).login
            except ValidationError as exc:
                raise RemoteTransportError(f"Unexpected /user payload: {exc}") from exc
        return self._login

    def get_repository(self, owner: str, name: str) -> RepositoryInfo:
        payload = self._json(self._request("GET", f"/repos/{quote(owner)}/{quote(name)}"))
        try:
            return RepositoryInfo.model_validate(payload)
        except ValidationError as exc:
            raise RemoteTransportError(f"Unexpected repository payload: {exc}") from exc

    def create_repository(
        self,
        name: str,
        *,
        private: bool = False,
        description: str | None = None,
    ) -> RepositoryInfo:
        body: dict[str, Any] = {"name": name, "private": private}
        if description:
            body["description"] = description
        payload = self._json(self._request("POST", "/user/repos", json=body))
        try:
            return RepositoryInfo.model_validate(payload)
        except ValidationError as exc:
            raise RemoteTransportError(f"Unexpected repository payload: {exc}") from exc

    # -------------------------------------------------------------------------
    # Repository contents
    # -------------------------------------------------------------------------

    @staticmethod
    def _contents_url(owner: str, repo: str, path: str) -> str:
        return f"/repos/{quote(owner)}/{quote(repo)}/contents/{quote(path.lstrip('/'))}"

    def read_file(self, owner: str, repo: str, path: str) -> RemoteFile | None:
        """Return the file's bytes and revision token, or None if it does not exist."""
        try:
            response = self._request("GET", self._contents_url(owner, repo, path))
        except RemoteNotFound:
            return None

        try:
            item = ContentFile.model_validate(self._json(response))
        except ValidationError as exc:
            raise RemoteTransportError(f"Unexpected contents payload for {path}: {exc}") from exc

        if item.encoding != "base64":
            raise RemoteTransportError(f"Unsupported content encoding {item.encoding!r} for {path}")
        try:
            content = base64.b64decode(item.content.encode("ascii"), validate=False)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise RemoteTransportError(f"Corrupt base64 content for {path}") from exc

        return RemoteFile(path=item.path, content=content, revision=item.sha)

    def _put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        revision: str | None,
    ) -> None:
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
        }
        if revision is not None:
            body["sha"] = revision
        self._request("PUT", self._contents_url(owner, repo, path), json=body)

    def create_file(self, owner: str, repo: str, path: str, content: bytes, message: str) -> None:
        try:
            self._put_file(owner, repo, path, content, message, revision=None)
        except RemoteTransportError as exc:
            # 422 here means the file appeared after we looked for it.
            if exc.status_code == 422:
                raise RemoteConflict(str(exc), status_code=422) from exc
            raise

    def update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        revision: str,
        message: str,
    ) -> None:
        """Replace a file; raises RemoteConflict if `revision` is no longer current."""
        self._put_file(owner, repo, path, content, message, revision=revision)

