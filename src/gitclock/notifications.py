"""Desktop notifications for tick outcomes.

Uses the `notify-send` CLI (FreeDesktop notifications) where available and
silently does nothing elsewhere. Notifications are passive: a failure to
show one never affects the polling loop.

Usage:
    from gitclock.notifications import notify

    notify(summary="GitClock", body="Logged 3 changed file(s)")
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Literal

from .config import NotificationsConfig
from .scheduler import TickOutcome, TickStatus

logger = logging.getLogger(__name__)

# Notification urgency levels
Urgency = Literal["low", "normal", "critical"]


@dataclass
class Notification:
    """A desktop notification."""

    summary: str
    body: str = ""
    urgency: Urgency = "normal"
    timeout_ms: int = 5000
    icon: str = "dialog-information"
    app_name: str = "GitClock"


def notify(
    summary: str,
    body: str = "",
    urgency: Urgency = "normal",
    timeout_ms: int = 5000,
    icon: str = "dialog-information",
) -> bool:
    """Send a desktop notification.

    Returns:
        True if notification was sent, False otherwise
    """
    notification = Notification(
        summary=summary,
        body=body,
        urgency=urgency,
        timeout_ms=timeout_ms,
        icon=icon,
    )

    if _notify_send(notification):
        return True

    logger.debug("Could not send notification: %s", summary)
    return False


def _notify_send(notification: Notification) -> bool:
    """Send notification via notify-send CLI."""
    if sys.platform != "linux" or shutil.which("notify-send") is None:
        return False

    cmd = [
        "notify-send",
        "--app-name", notification.app_name,
        "--urgency", notification.urgency,
        "--expire-time", str(notification.timeout_ms),
        "--icon", notification.icon,
        notification.summary,
    ]
    if notification.body:
        cmd.append(notification.body)

    try:
        completed = subprocess.run(cmd, capture_output=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return completed.returncode == 0


class OutcomeNotifier:
    """Tick outcome callback for PollingScheduler.

    Clean and skipped ticks are not worth interrupting anyone for.
    """

    def __init__(self, config: NotificationsConfig) -> None:
        self._config = config

    def _urgency(self) -> Urgency:
        if self._config.urgency in ("low", "normal", "critical"):
            return self._config.urgency  # type: ignore[return-value]
        return "normal"

    def __call__(self, outcome: TickOutcome) -> None:
        if not self._config.enabled:
            return
        if outcome.status is TickStatus.SYNCED:
            notify(
                summary="GitClock",
                body=outcome.summary(),
                urgency="low",
                timeout_ms=self._config.timeout_ms,
            )
        elif outcome.status is TickStatus.FAILED:
            notify(
                summary="GitClock Error",
                body=outcome.summary(),
                urgency=self._urgency(),
                timeout_ms=self._config.timeout_ms,
                icon="dialog-error",
            )
