"""Working tree scanning.

Inspects git metadata only (status codes and numstat line counts); file
contents are never read.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from .config import ScanConfig
from .errors import ScanUnavailable, record_error
from .models import ChangeRecord, Classification

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30

UNTRACKED_CODE = "??"


def run_git(repo_path: Path, args: list[str]) -> str:
    """Run a git command and return stdout.

    Raises ScanUnavailable if git is missing or the command fails.
    """
    try:
        completed = subprocess.run(
            ["git", "-C", str(repo_path), "-c", "core.quotePath=false", *args],
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as exc:
        raise ScanUnavailable("git is not installed or not on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise ScanUnavailable(f"git command timed out: git {' '.join(args)}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        detail = stderr or stdout or "(no details)"
        raise ScanUnavailable(f"git command failed: git {' '.join(args)} :: {detail}") from exc

    return completed.stdout


def is_git_repo(repo_path: Path) -> bool:
    """Return True if repo_path is inside a git working tree."""
    try:
        out = run_git(repo_path, ["rev-parse", "--is-inside-work-tree"])
    except ScanUnavailable:
        return False
    return out.strip() == "true"


def parse_status_output(text: str) -> list[tuple[str, str]]:
    """Parse `git status --porcelain=v1 -z` output into (code, path) pairs.

    Entries are NUL-terminated and paths are never quoted or escaped.
    Order follows the output. Renames and copies report their destination
    path; the source path that follows in its own field is skipped.
    """
    entries: list[tuple[str, str]] = []
    fields = text.split("\0")
    index = 0
    while index < len(fields):
        field = fields[index]
        index += 1
        if not field:
            continue
        if len(field) < 4 or field[2] != " ":
            logger.debug("Skipping unparsable status entry: %r", field)
            continue

        code, path = field[:2], field[3:]
        if "R" in code or "C" in code:
            index += 1
        entries.append((code, path))
    return entries


def classify_status(code: str) -> Classification:
    stripped = code.strip()
    if stripped == UNTRACKED_CODE:
        return Classification.ADDED
    if stripped and set(stripped) == {"M"}:
        return Classification.MODIFIED
    return Classification.OTHER


def parse_numstat_output(text: str) -> tuple[int, int] | None:
    """Parse single-path `git diff --numstat` output.

    Returns (additions, deletions), or None when there is no parsable pair
    (empty output, binary files reported as `-`).
    """
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t", 2)
        if len(parts) < 2:
            return None
        try:
            additions, deletions = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if additions < 0 or deletions < 0:
            return None
        return additions, deletions
    return None


class WorkingTreeScanner:
    """Produces change records for the current state of one working tree."""

    def __init__(self, repo_path: Path, *, config: ScanConfig | None = None) -> None:
        self.repo_path = repo_path
        self._config = config or ScanConfig()

    def status_entries(self) -> list[tuple[str, str]]:
        untracked = "all" if self._config.include_untracked_files else "normal"
        out = run_git(
            self.repo_path,
            ["status", "--porcelain=v1", "-z", f"--untracked-files={untracked}"],
        )
        return parse_status_output(out)

    def line_delta(self, path: str) -> tuple[int, int] | None:
        """Return (additions, deletions) for one modified path, or None if unmeasurable."""
        try:
            out = run_git(
                self.repo_path, ["diff", "HEAD", "--numstat", "--", f":(literal){path}"]
            )
        except ScanUnavailable as exc:
            logger.debug("numstat unavailable for %s: %s", path, exc)
            return None
        return parse_numstat_output(out)

    def scan(self) -> Iterator[ChangeRecord]:
        """Yield one record per touched path, in status order.

        A failing status query is logged as a warning and yields nothing; the
        caller treats the tree as clean for this tick.
        """
        try:
            entries = self.status_entries()
        except ScanUnavailable as exc:
            record_error(
                operation="scan_working_tree",
                exc=exc,
                context={"repo": str(self.repo_path)},
            )
            return

        if not entries:
            return

        modified_paths = [
            path for code, path in entries if classify_status(code) is Classification.MODIFIED
        ]
        workers = max(1, min(self._config.max_workers, len(modified_paths) or 1))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gitclock-numstat") as pool:
            deltas: dict[str, Future[tuple[int, int] | None]] = {
                path: pool.submit(self.line_delta, path) for path in modified_paths
            }
            for code, path in entries:
                classification = classify_status(code)
                if classification is not Classification.MODIFIED:
                    yield ChangeRecord(path=path, classification=classification)
                    continue

                delta = deltas[path].result()
                if delta is None:
                    yield ChangeRecord(
                        path=path, classification=classification, additions=None, deletions=None
                    )
                else:
                    yield ChangeRecord(
                        path=path,
                        classification=classification,
                        additions=delta[0],
                        deletions=delta[1],
                    )
