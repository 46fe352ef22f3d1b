"""TOML configuration file support for GitClock.

Loads configuration from:
1. System: /etc/gitclock/config.toml
2. User: ~/.config/gitclock/config.toml (XDG_CONFIG_HOME)
3. Local: ./.gitclock.toml (project-specific)
4. Environment variables (highest priority)

Configuration is merged in order, with later sources overriding earlier ones.
The resulting `Config` is built once at startup and handed to each component;
nothing else in the package reads the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import tomllib

from gitclock.paths import paths

logger = logging.getLogger(__name__)


@dataclass
class GeneralConfig:
    """General configuration settings."""

    log_level: str = "INFO"
    log_max_bytes: int = 1_000_000
    log_backup_count: int = 3


@dataclass
class GitHubConfig:
    """Hosting service endpoints and OAuth application credentials."""

    api_url: str = "https://api.github.com"
    auth_url: str = "https://github.com/login/oauth/authorize"
    token_url: str = "https://github.com/login/oauth/access_token"
    client_id: str | None = None
    client_secret: str | None = None
    # Bearer token override; normally the token lives in the system keyring.
    token: str | None = None
    redirect_uri: str = "http://localhost:5000/oauthCallback"
    scope: str = "repo"
    timeout_seconds: float = 30.0
    auth_timeout_seconds: int = 300

    @property
    def callback_host(self) -> str:
        return urlsplit(self.redirect_uri).hostname or "localhost"

    @property
    def callback_port(self) -> int:
        return urlsplit(self.redirect_uri).port or 80

    @property
    def callback_path(self) -> str:
        return urlsplit(self.redirect_uri).path or "/"


@dataclass
class RepositoryConfig:
    """The remote repository and the log file kept inside it."""

    name: str = "gitclock-log"
    owner: str | None = None
    private: bool = False
    log_path: str = "gitclock.md"
    commit_message: str = "Update coding activity log"


@dataclass
class PollingConfig:
    interval_seconds: int = 300
    run_immediately: bool = True


@dataclass
class ScanConfig:
    max_workers: int = 4
    include_untracked_files: bool = True


@dataclass
class NotificationsConfig:
    """Desktop notification configuration."""

    enabled: bool = True
    urgency: str = "normal"  # "low", "normal", "critical"
    timeout_ms: int = 5000


@dataclass
class Config:
    """Complete GitClock configuration."""

    general: GeneralConfig = field(default_factory=GeneralConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    # Runtime overrides
    repo_path: Path | None = None

    @classmethod
    def load(
        cls,
        *,
        sources: list[Path] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Config":
        """Load configuration from all sources."""
        config = cls()

        if sources is None:
            sources = [
                Path("/etc/gitclock/config.toml"),  # System
                paths.config_file,  # User (~/.config/gitclock/config.toml)
                Path.cwd() / ".gitclock.toml",  # Local project
            ]

        for source in sources:
            if source.exists():
                config = config._merge_from_file(source)

        return config._apply_env_overrides(os.environ if environ is None else environ)

    def _merge_from_file(self, path: Path) -> "Config":
        """Merge configuration from a TOML file."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            # Log but don't fail on config errors
            logger.warning("Failed to load config from %s: %s", path, e)
            return self
        return self._merge_dict(data)

    def _merge_dict(self, data: dict[str, Any]) -> "Config":
        """Merge a dictionary into the configuration."""
        for section_name in (
            "general",
            "github",
            "repository",
            "polling",
            "scan",
            "notifications",
        ):
            if isinstance(data.get(section_name), dict):
                _merge_dataclass(getattr(self, section_name), data[section_name])
        if isinstance(data.get("repo_path"), str) and data["repo_path"]:
            self.repo_path = Path(data["repo_path"]).expanduser()
        return self

    def _apply_env_overrides(self, environ: Mapping[str, str]) -> "Config":
        """Apply environment variable overrides.

        The unprefixed names are the ones the first GitClock release read from
        a `.env` file; they are applied first so the prefixed names win.
        """
        env_mappings = {
            "GITHUB_API_URL": ("github", "api_url"),
            "AUTH_URL": ("github", "auth_url"),
            "TOKEN_URL": ("github", "token_url"),
            "CLIENT_ID": ("github", "client_id"),
            "CLIENT_SECRET": ("github", "client_secret"),
            "REDIRECT_URI": ("github", "redirect_uri"),
            "REPO_NAME": ("repository", "name"),
            "GITCLOCK_LOG_LEVEL": ("general", "log_level"),
            "GITCLOCK_GITHUB_API_URL": ("github", "api_url"),
            "GITCLOCK_AUTH_URL": ("github", "auth_url"),
            "GITCLOCK_TOKEN_URL": ("github", "token_url"),
            "GITCLOCK_CLIENT_ID": ("github", "client_id"),
            "GITCLOCK_CLIENT_SECRET": ("github", "client_secret"),
            "GITCLOCK_GITHUB_TOKEN": ("github", "token"),
            "GITCLOCK_REDIRECT_URI": ("github", "redirect_uri"),
            "GITCLOCK_REPO_NAME": ("repository", "name"),
            "GITCLOCK_REPO_OWNER": ("repository", "owner"),
            "GITCLOCK_REPO_PRIVATE": ("repository", "private", _parse_bool),
            "GITCLOCK_LOG_FILE": ("repository", "log_path"),
            "GITCLOCK_POLL_INTERVAL_SECONDS": ("polling", "interval_seconds", int),
            "GITCLOCK_SCAN_MAX_WORKERS": ("scan", "max_workers", int),
            "GITCLOCK_NOTIFICATIONS": ("notifications", "enabled", _parse_bool),
        }

        for env_var, mapping in env_mappings.items():
            value = environ.get(env_var)
            if value is not None:
                section_name = mapping[0]
                field_name = mapping[1]
                converter = mapping[2] if len(mapping) > 2 else str

                section = getattr(self, section_name)
                try:
                    setattr(section, field_name, converter(value))  # type: ignore[operator]
                except (ValueError, TypeError):
                    logger.warning("Ignoring invalid value for %s", env_var)

        # Handle repo_path specially
        repo_path_env = environ.get("GITCLOCK_REPO_PATH")
        if repo_path_env:
            self.repo_path = Path(repo_path_env).expanduser()

        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary, with secrets masked."""
        data = {
            "general": asdict(self.general),
            "github": asdict(self.github),
            "repository": asdict(self.repository),
            "polling": asdict(self.polling),
            "scan": asdict(self.scan),
            "notifications": asdict(self.notifications),
            "repo_path": str(self.repo_path) if self.repo_path else None,
        }
        for secret in ("client_secret", "token"):
            if data["github"][secret]:
                data["github"][secret] = "********"
        return data


def _merge_dataclass(obj: Any, data: dict[str, Any]) -> Any:
    """Merge dictionary values into a dataclass instance."""
    for key, value in data.items():
        if hasattr(obj, key):
            # Handle type conversion for common cases
            current_value = getattr(obj, key)
            if isinstance(current_value, bool) and isinstance(value, str):
                value = _parse_bool(value)
            elif isinstance(current_value, int) and isinstance(value, str):
                value = int(value)
            elif isinstance(current_value, float) and isinstance(value, (str, int)):
                value = float(value)
            setattr(obj, key, value)
    return obj


def _parse_bool(value: str) -> bool:
    """Parse a boolean from string."""
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


# Default configuration template
DEFAULT_CONFIG_TEMPLATE = """\
# GitClock Configuration
#
# This file uses TOML format: https://toml.io/
# Environment variables (GITCLOCK_*) override these settings.

[general]
# Log level: DEBUG, INFO, WARNING, ERROR
log_level = "INFO"

# Log file rotation
log_max_bytes = 1000000
log_backup_count = 3

[github]
api_url = "https://api.github.com"
auth_url = "https://github.com/login/oauth/authorize"
token_url = "https://github.com/login/oauth/access_token"

# OAuth application credentials
# client_id = ""
# client_secret = ""

# Where the one-shot login callback listens
redirect_uri = "http://localhost:5000/oauthCallback"
scope = "repo"

[repository]
# Repository that holds the activity log (created on first use)
name = "gitclock-log"
# owner = "your-login"
private = false
log_path = "gitclock.md"

[polling]
# Seconds between working tree scans
interval_seconds = 300
run_immediately = true

[scan]
# Concurrent per-file diff queries
max_workers = 4
include_untracked_files = true

[notifications]
enabled = true

# Notification urgency: "low", "normal", "critical"
urgency = "normal"
timeout_ms = 5000
"""


def write_default_config(path: Path | None = None) -> Path:
    """Write the default configuration file.

    Args:
        path: Path to write to. Defaults to user config path.

    Returns:
        The path where the config was written.
    """
    if path is None:
        path = paths.config_file

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return path
