from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from .models import ChangeBatch, ChangeRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChangeBatchBuilder:
    """Groups one tick's change records under a single capture timestamp."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def build(self, records: Iterable[ChangeRecord]) -> ChangeBatch | None:
        """Return a batch, or None when there is nothing to report."""
        collected = tuple(records)
        if not collected:
            return None
        return ChangeBatch(captured_at=self._clock(), records=collected)
