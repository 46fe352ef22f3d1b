"""Delegated-authorization (OAuth web flow) handshake.

1. Start a one-shot local listener on the configured redirect URI.
2. Open the provider's authorize page in the browser.
3. Wait for exactly one callback carrying `code` (hard timeout).
4. Exchange the code for a bearer token.

The listener is a tiny FastAPI app run by uvicorn on a background thread.
It shuts itself down after the first valid callback or on timeout, and
shutting it down twice is harmless.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .config import GitHubConfig
from .errors import AuthorizationError
from .models import AccessToken

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class CallbackResult:
    code: str
    state: str | None


def build_authorize_url(config: GitHubConfig, *, state: str) -> str:
    if not config.client_id:
        raise AuthorizationError("No OAuth client id configured (github.client_id)")
    params = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": config.scope,
        "state": state,
    }
    return str(httpx.URL(config.auth_url).copy_merge_params(params))


class CallbackListener:
    """Suspend until one request arrives on the callback path."""

    def __init__(self, *, host: str, port: int, path: str, timeout_seconds: float) -> None:
        self._timeout = timeout_seconds
        self._received = threading.Event()
        self._result: CallbackResult | None = None
        self._error: str | None = None
        self._thread: threading.Thread | None = None

        self.app = FastAPI(
            title="GitClock login callback",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        self.app.add_api_route(path, self._handle_callback, methods=["GET"])
        self._server = uvicorn.Server(
            uvicorn.Config(self.app, host=host, port=port, log_level="warning", lifespan="off")
        )
        self.address = f"http://{host}:{port}{path}"

    @property
    def result(self) -> CallbackResult | None:
        return self._result

    def _handle_callback(
        self,
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> PlainTextResponse:
        if self._received.is_set():
            return PlainTextResponse("Login already handled.", status_code=409)

        if error:
            self._error = error_description or error
            self._finish()
            return PlainTextResponse(f"Authorization failed: {self._error}", status_code=400)

        if not code:
            return PlainTextResponse("Error: No code received.", status_code=400)

        self._result = CallbackResult(code=code, state=state)
        self._finish()
        return PlainTextResponse("You can close this window and return to your editor.")

    def _finish(self) -> None:
        self._received.set()
        self._server.should_exit = True

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._server.run, name="gitclock-oauth-callback", daemon=True
        )
        self._thread.start()
        deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
        while not self._server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                self.shutdown()
                raise AuthorizationError(f"Could not listen on {self.address}")
            time.sleep(0.05)
        logger.info("Listening on %s for OAuth callback", self.address)

    def wait(self) -> CallbackResult:
        try:
            if not self._received.wait(self._timeout):
                raise AuthorizationError(
                    f"No login callback received within {self._timeout:g} seconds"
                )
        finally:
            self.shutdown()

        if self._error is not None:
            raise AuthorizationError(f"Authorization failed: {self._error}")
        if self._result is None:
            raise AuthorizationError("Login callback carried no code")
        return self._result

    def shutdown(self) -> None:
        self._server.should_exit = True
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=STARTUP_TIMEOUT_SECONDS)


def exchange_code(
    config: GitHubConfig,
    code: str,
    *,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Exchange an authorization code for a bearer token."""
    body = {
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "code": code,
        "redirect_uri": config.redirect_uri,
    }
    try:
        with httpx.Client(timeout=config.timeout_seconds, transport=transport) as client:
            res = client.post(config.token_url, json=body, headers={"Accept": "application/json"})
            res.raise_for_status()
            payload = AccessToken.model_validate(res.json())
    except (httpx.HTTPError, ValueError) as exc:
        raise AuthorizationError(f"Error exchanging code for token: {exc}") from exc

    if not payload.access_token:
        detail = payload.error_description or payload.error or "no access_token in response"
        raise AuthorizationError(f"Failed to obtain access token: {detail}")
    return payload.access_token


class AuthorizationHandshake:
    """Runs the full login flow once and returns the bearer token."""

    def __init__(
        self,
        config: GitHubConfig,
        *,
        open_browser: Callable[[str], object] = webbrowser.open,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._open_browser = open_browser
        self._transport = transport

    def run(self) -> str:
        if not self._config.client_id or not self._config.client_secret:
            raise AuthorizationError(
                "OAuth client id and secret must be configured before logging in"
            )

        state = secrets.token_urlsafe(16)
        url = build_authorize_url(self._config, state=state)
        listener = CallbackListener(
            host=self._config.callback_host,
            port=self._config.callback_port,
            path=self._config.callback_path,
            timeout_seconds=self._config.auth_timeout_seconds,
        )
        listener.start()
        try:
            logger.info("Opening login page")
            self._open_browser(url)
            result = listener.wait()
        finally:
            listener.shutdown()

        if result.state != state:
            raise AuthorizationError("Login callback state did not match; ignoring it")

        return exchange_code(self._config, result.code, transport=self._transport)
