"""Error kinds and error recording.

Remote failures are raised by the hosting service client and converted into
results by the reconciler. Nothing here is allowed to stop the polling loop.
"""

from __future__ import annotations

import hashlib
import logging
import traceback
from datetime import UTC, datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

_RECENT_SIGNATURES: dict[str, datetime] = {}


class GitClockError(Exception):
    """Base class for GitClock errors."""


class ScanUnavailable(GitClockError):
    """git is missing or the path is not a working tree."""


class RemoteError(GitClockError):
    """A call to the hosting service failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFound(RemoteError):
    """The requested remote resource does not exist."""


class RemoteConflict(RemoteError):
    """A write was rejected because the revision token is stale."""


class RemoteTransportError(RemoteError):
    """Network, authorization or unexpected-response failure."""


class AuthorizationError(GitClockError):
    """The delegated-authorization handshake did not produce a credential."""


def _error_signature(*, operation: str, exc: BaseException) -> str:
    material = f"{operation}|{type(exc).__name__}|{str(exc)}".encode("utf-8", errors="replace")
    return hashlib.sha256(material).hexdigest()


def record_error(
    *,
    operation: str,
    exc: BaseException,
    context: dict[str, Any] | None = None,
    dedupe_window_seconds: int = 60,
    include_traceback: bool = False,
) -> bool:
    """Log a metadata-only error summary.

    Identical errors (same operation, type and message) are suppressed for a
    short window so a persistently failing tick does not flood the log.

    Returns True when the error was logged, False when it was deduplicated.
    """

    signature = _error_signature(operation=operation, exc=exc)
    now = datetime.now(UTC)

    if dedupe_window_seconds > 0:
        cutoff = now - timedelta(seconds=dedupe_window_seconds)
        last_seen = _RECENT_SIGNATURES.get(signature)
        if last_seen is not None and last_seen >= cutoff:
            return False
        _RECENT_SIGNATURES[signature] = now

    tb_text: str | None = None
    if include_traceback:
        tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        # Keep the payload bounded.
        if len(tb_text) > 10_000:
            tb_text = tb_text[-10_000:]

    logger.warning(
        "%s failed: %s: %s (signature=%s, context=%s)%s",
        operation,
        type(exc).__name__,
        exc,
        signature[:12],
        context or {},
        f"\n{tb_text}" if tb_text else "",
    )
    return True
