"""Startup wiring.

Builds every component from one `Config`: credential lookup, repository
provisioning, then scanner -> builder -> reconciler -> scheduler.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from .batch import ChangeBatchBuilder
from .config import Config
from .credentials import get_credential
from .errors import AuthorizationError, ScanUnavailable
from .git_scan import WorkingTreeScanner, is_git_repo
from .github import GitHubClient
from .provisioning import ProvisionResult, ensure_repository_exists
from .reconciler import RemoteLogReconciler
from .scheduler import PollingScheduler, TickOutcome

logger = logging.getLogger(__name__)


def resolve_repo_path(config: Config, path: Path | None = None) -> Path:
    """Pick the working tree to watch: explicit path, configured path, then cwd."""
    candidate = (path or config.repo_path or Path.cwd()).expanduser().resolve()
    if not is_git_repo(candidate):
        raise ScanUnavailable(f"Not a git repository: {candidate}")
    return candidate


def build_reconciler(config: Config, client: GitHubClient) -> RemoteLogReconciler:
    return RemoteLogReconciler(
        client,
        repo=config.repository.name,
        path=config.repository.log_path,
        owner=config.repository.owner,
        commit_message=config.repository.commit_message,
    )


def build_scheduler(
    config: Config,
    client: GitHubClient,
    repo_path: Path,
    *,
    on_outcome: Callable[[TickOutcome], None] | None = None,
) -> PollingScheduler:
    return PollingScheduler(
        scanner=WorkingTreeScanner(repo_path, config=config.scan),
        builder=ChangeBatchBuilder(),
        reconciler=build_reconciler(config, client),
        interval_seconds=config.polling.interval_seconds,
        run_immediately=config.polling.run_immediately,
        on_outcome=on_outcome,
    )


@dataclass
class Agent:
    """A running (or ready to run) GitClock instance."""

    config: Config
    repo_path: Path
    client: GitHubClient
    scheduler: PollingScheduler
    provisioning: ProvisionResult

    def start(self) -> None:
        self.scheduler.start()

    def close(self) -> None:
        self.scheduler.stop()
        self.client.close()


def create_agent(
    config: Config,
    *,
    repo_path: Path | None = None,
    on_outcome: Callable[[TickOutcome], None] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Agent:
    """Assemble an agent. Raises AuthorizationError when no credential is stored."""
    token = get_credential(config.github)
    if not token:
        raise AuthorizationError("You are not authenticated. Run `gitclock login` first.")

    resolved = resolve_repo_path(config, repo_path)
    client = GitHubClient(token=token, config=config.github, transport=transport)
    provisioning = ensure_repository_exists(client, config.repository)
    if not provisioning.ok:
        # Ticks keep retrying the write; a missing repository shows up as a
        # transport failure until it exists.
        logger.warning("Repository check failed: %s", provisioning.message)

    return Agent(
        config=config,
        repo_path=resolved,
        client=client,
        scheduler=build_scheduler(config, client, resolved, on_outcome=on_outcome),
        provisioning=provisioning,
    )
