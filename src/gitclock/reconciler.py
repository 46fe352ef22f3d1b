"""Create-or-append reconciliation of the remote activity log.

Each call does one read and at most one write. The write is conditioned on
the revision token from that read; a stale token is reported as a conflict
and left for the next tick, which re-reads and catches up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .errors import RemoteConflict, RemoteError
from .log_document import TIMESTAMP_FORMAT, append_rows, new_document, render_rows
from .models import ChangeBatch, RemoteFile

logger = logging.getLogger(__name__)


class ContentAPI(Protocol):
    def get_login(self) -> str: ...

    def read_file(self, owner: str, repo: str, path: str) -> RemoteFile | None: ...

    def create_file(
        self, owner: str, repo: str, path: str, content: bytes, message: str
    ) -> None: ...

    def update_file(
        self, owner: str, repo: str, path: str, content: bytes, revision: str, message: str
    ) -> None: ...


class ReconcileStatus(str, Enum):
    CREATED = "created"
    APPENDED = "appended"
    CONFLICT = "conflict"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class ReconcileResult:
    status: ReconcileStatus
    rows_written: int = 0
    # False when the document had no recognisable table and a new one was added.
    table_found: bool | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (ReconcileStatus.CREATED, ReconcileStatus.APPENDED)


class RemoteLogReconciler:
    """Makes the remote log read "prior content plus this batch"."""

    def __init__(
        self,
        client: ContentAPI,
        *,
        repo: str,
        path: str,
        owner: str | None = None,
        commit_message: str = "Update coding activity log",
    ) -> None:
        self._client = client
        self._repo = repo
        self._path = path
        self._owner = owner
        self._commit_message = commit_message

    def _message(self, batch: ChangeBatch) -> str:
        noun = "change" if len(batch) == 1 else "changes"
        return (
            f"{self._commit_message}: {len(batch)} {noun} at "
            f"{batch.captured_at.strftime(TIMESTAMP_FORMAT)} UTC"
        )

    def reconcile(self, batch: ChangeBatch) -> ReconcileResult:
        rows = render_rows(batch)
        message = self._message(batch)
        try:
            owner = self._owner or self._client.get_login()
            remote = self._client.read_file(owner, self._repo, self._path)

            if remote is None:
                document = new_document(rows)
                self._client.create_file(
                    owner, self._repo, self._path, document.encode("utf-8"), message
                )
                logger.info("Created %s/%s:%s with %d rows", owner, self._repo, self._path, len(rows))
                return ReconcileResult(ReconcileStatus.CREATED, rows_written=len(rows))

            try:
                body = remote.content.decode("utf-8")
            except UnicodeDecodeError:
                return self._failed(
                    ReconcileStatus.TRANSPORT_ERROR,
                    f"{self._path} is not valid UTF-8; refusing to rewrite it",
                )

            document, table_found = append_rows(body, rows)
            if not table_found:
                logger.warning(
                    "No activity table found in %s; appending a new table after existing content",
                    self._path,
                )
            self._client.update_file(
                owner,
                self._repo,
                self._path,
                document.encode("utf-8"),
                remote.revision,
                message,
            )
        except RemoteConflict as exc:
            return self._failed(ReconcileStatus.CONFLICT, str(exc))
        except RemoteError as exc:
            return self._failed(ReconcileStatus.TRANSPORT_ERROR, str(exc))

        logger.info("Appended %d rows to %s", len(rows), self._path)
        return ReconcileResult(
            ReconcileStatus.APPENDED, rows_written=len(rows), table_found=table_found
        )

    def _failed(self, status: ReconcileStatus, message: str) -> ReconcileResult:
        logger.warning("Reconciling %s failed (%s): %s", self._path, status.value, message)
        return ReconcileResult(status, message=message)
