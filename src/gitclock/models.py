from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Classification(str, Enum):
    """How a touched path is reported in the activity log."""

    ADDED = "Added"
    MODIFIED = "Modified"
    OTHER = "Other"


@dataclass(frozen=True)
class ChangeRecord:
    """One touched path observed in a single scan.

    `additions`/`deletions` are None when git could not measure the change
    (binary file, path reverted between the status and diff queries, tree
    without commits). None is never the same as zero.
    """

    path: str
    classification: Classification
    additions: int | None = 0
    deletions: int | None = 0

    @property
    def measured(self) -> bool:
        return self.additions is not None and self.deletions is not None


@dataclass(frozen=True)
class ChangeBatch:
    """One tick's worth of change records sharing one capture timestamp."""

    captured_at: datetime
    records: tuple[ChangeRecord, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class RemoteFile:
    """Raw bytes of a remote file plus the revision token a write must be conditioned on."""

    path: str
    content: bytes
    revision: str


# =============================================================================
# Hosting service payloads
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ContentFile(_Payload):
    """A file as returned by the repository contents endpoint."""

    path: str
    sha: str
    content: str = ""
    encoding: str = "base64"


class AccessToken(_Payload):
    access_token: str | None = None
    token_type: str | None = None
    scope: str | None = None
    error: str | None = None
    error_description: str | None = None


class RepositoryInfo(_Payload):
    name: str
    full_name: str
    private: bool = False
    html_url: str | None = None


class UserInfo(_Payload):
    login: str
