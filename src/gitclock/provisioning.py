from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import RepositoryConfig
from .errors import RemoteError, RemoteNotFound
from .github import GitHubClient

logger = logging.getLogger(__name__)

REPOSITORY_DESCRIPTION = "Coding activity log maintained by GitClock"


@dataclass(frozen=True)
class ProvisionResult:
    ok: bool
    created: bool = False
    full_name: str | None = None
    message: str | None = None


def ensure_repository_exists(client: GitHubClient, repository: RepositoryConfig) -> ProvisionResult:
    """Look up the log repository and create it under the user when missing."""
    try:
        owner = repository.owner or client.get_login()
        try:
            info = client.get_repository(owner, repository.name)
        except RemoteNotFound:
            logger.info("Repository %s/%s not found. Creating it...", owner, repository.name)
            info = client.create_repository(
                repository.name,
                private=repository.private,
                description=REPOSITORY_DESCRIPTION,
            )
            logger.info("Repository %s created", info.full_name)
            return ProvisionResult(ok=True, created=True, full_name=info.full_name)
    except RemoteError as exc:
        logger.warning("Error checking or creating repository %s: %s", repository.name, exc)
        return ProvisionResult(ok=False, message=str(exc))

    logger.info("Repository %s exists", info.full_name)
    return ProvisionResult(ok=True, full_name=info.full_name)
