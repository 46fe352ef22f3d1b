from __future__ import annotations

import keyring
import pytest
from keyring.errors import KeyringError

from gitclock.config import GitHubConfig
from gitclock.credentials import (
    SERVICE_NAME,
    TOKEN_KEY,
    delete_credential,
    get_credential,
    store_credential,
)


def test_store_then_get(fake_keyring) -> None:  # noqa: ANN001
    store_credential("gho_abc")

    assert fake_keyring[(SERVICE_NAME, TOKEN_KEY)] == "gho_abc"
    assert get_credential() == "gho_abc"


def test_missing_credential_is_none(fake_keyring) -> None:  # noqa: ANN001
    assert get_credential() is None
    assert get_credential(GitHubConfig()) is None


def test_configured_token_wins_over_keyring(fake_keyring) -> None:  # noqa: ANN001
    store_credential("from-keyring")

    assert get_credential(GitHubConfig(token="from-config")) == "from-config"


def test_delete_reports_whether_anything_was_removed(fake_keyring) -> None:  # noqa: ANN001
    store_credential("gho_abc")

    assert delete_credential() is True
    assert delete_credential() is False
    assert get_credential() is None


def test_keyring_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*args: object) -> None:
        raise KeyringError("locked")

    monkeypatch.setattr(keyring, "set_password", broken)
    monkeypatch.setattr(keyring, "get_password", broken)

    with pytest.raises(RuntimeError, match="Failed to store credential"):
        store_credential("gho_abc")
    assert get_credential() is None
