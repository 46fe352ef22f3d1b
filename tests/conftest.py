from __future__ import annotations

import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest


def run_git(repo: Path, args: list[str]) -> str:
    completed = subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


@pytest.fixture(autouse=True)
def _reset_error_dedupe() -> Iterator[None]:
    """Error dedupe state is process-global; keep tests independent."""
    import gitclock.errors as errors_mod

    errors_mod._RECENT_SIGNATURES.clear()
    yield
    errors_mod._RECENT_SIGNATURES.clear()


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repo with one committed file."""

    repo = tmp_path / "repo"
    repo.mkdir(parents=True, exist_ok=True)

    run_git(repo, ["init"])
    run_git(repo, ["config", "user.email", "test@example.com"])
    run_git(repo, ["config", "user.name", "GitClock Test"])
    run_git(repo, ["config", "commit.gpgsign", "false"])

    (repo / "src").mkdir(parents=True, exist_ok=True)
    (repo / "src" / "example.py").write_text(
        """def hello() -> str:\n    return \"hello\"\n""",
        encoding="utf-8",
    )
    (repo / "README.md").write_text("# Example\n", encoding="utf-8")

    run_git(repo, ["add", "."])
    run_git(repo, ["commit", "-m", "initial"])
    return repo


@pytest.fixture
def fake_keyring(monkeypatch: pytest.MonkeyPatch) -> dict[tuple[str, str], str]:
    """Replace the system keyring with an in-memory dict."""
    import keyring
    from keyring.errors import PasswordDeleteError

    store: dict[tuple[str, str], str] = {}

    def _set(service: str, key: str, value: str) -> None:
        store[(service, key)] = value

    def _get(service: str, key: str) -> str | None:
        return store.get((service, key))

    def _delete(service: str, key: str) -> None:
        if (service, key) not in store:
            raise PasswordDeleteError("not found")
        del store[(service, key)]

    monkeypatch.setattr(keyring, "set_password", _set)
    monkeypatch.setattr(keyring, "get_password", _get)
    monkeypatch.setattr(keyring, "delete_password", _delete)
    return store
