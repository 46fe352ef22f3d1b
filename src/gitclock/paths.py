"""XDG Base Directory compliant paths for GitClock.

On Linux:
  - Config: ~/.config/gitclock (XDG_CONFIG_HOME)
  - Cache:  ~/.cache/gitclock (XDG_CACHE_HOME)

On other platforms, falls back to ~/.gitclock.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Final

# Application identifier
APP_NAME: Final[str] = "gitclock"


def _is_linux() -> bool:
    """Check if running on Linux."""
    return sys.platform.startswith("linux")


def _get_xdg_path(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory path with fallback to default."""
    if env_var in os.environ:
        return Path(os.environ[env_var]) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


@dataclass(frozen=True)
class XDGPaths:
    """XDG Base Directory compliant paths.

    - config: user configuration files
    - cache: log files and other regenerable data
    """

    config_home: Path
    cache_home: Path

    @classmethod
    def detect(cls) -> "XDGPaths":
        """Detect XDG-compliant paths for the current platform."""
        if _is_linux():
            config_home = _get_xdg_path("XDG_CONFIG_HOME", ".config")
            cache_home = _get_xdg_path("XDG_CACHE_HOME", ".cache")
        else:
            fallback = Path.home() / f".{APP_NAME}"
            config_home = fallback / "config"
            cache_home = fallback / "cache"

        return cls(config_home=config_home, cache_home=cache_home)

    @property
    def log_path(self) -> Path:
        """Application log path."""
        return self.cache_home / "gitclock.log"

    @property
    def config_file(self) -> Path:
        """Main configuration file."""
        return self.config_home / "config.toml"


# Global paths instance - initialized on import
paths = XDGPaths.detect()
