"""GitClock: log uncommitted working tree activity to a remote repository."""

__version__ = "0.1.0"
