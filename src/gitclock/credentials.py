"""Credential storage via the system keyring.

The bearer token obtained at login is kept in the desktop keyring (GNOME
Keyring, KDE Wallet, macOS Keychain, ...). A token set in the configuration
takes precedence and is never written to the keyring.
"""

from __future__ import annotations

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .config import GitHubConfig

logger = logging.getLogger(__name__)

# Service name for GitClock credentials in the keyring
SERVICE_NAME = "gitclock"
TOKEN_KEY = "github_access_token"


def store_credential(token: str) -> None:
    """Store the bearer token in the system keyring.

    Raises:
        RuntimeError: If the keyring rejects the write.
    """
    try:
        keyring.set_password(SERVICE_NAME, TOKEN_KEY, token)
    except KeyringError as e:
        raise RuntimeError(f"Failed to store credential: {e}") from e
    logger.info("Stored access token in keyring")


def get_credential(config: GitHubConfig | None = None) -> str | None:
    """Return the current bearer token, or None when not authenticated."""
    if config is not None and config.token:
        return config.token
    try:
        return keyring.get_password(SERVICE_NAME, TOKEN_KEY)
    except KeyringError as e:
        logger.warning("Failed to retrieve access token: %s", e)
        return None


def delete_credential() -> bool:
    """Remove the stored token. Returns True if one was deleted."""
    try:
        keyring.delete_password(SERVICE_NAME, TOKEN_KEY)
    except PasswordDeleteError:
        return False
    except KeyringError as e:
        logger.warning("Failed to delete access token: %s", e)
        return False
    logger.info("Deleted access token from keyring")
    return True


def get_keyring_backend_name() -> str:
    """Get the name of the current keyring backend."""
    try:
        return keyring.get_keyring().__class__.__name__
    except Exception as e:  # noqa: BLE001
        logger.debug("Failed to get keyring backend name: %s", e)
        return "Unknown"
