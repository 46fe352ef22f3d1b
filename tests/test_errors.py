from __future__ import annotations

import logging

from gitclock.errors import RemoteConflict, RemoteError, record_error


def test_record_error_logs_once_within_window(caplog) -> None:  # noqa: ANN001
    exc = RemoteConflict("sha mismatch", status_code=409)

    with caplog.at_level(logging.WARNING, logger="gitclock.errors"):
        first = record_error(operation="reconcile", exc=exc, context={"path": "gitclock.md"})
        second = record_error(operation="reconcile", exc=exc)

    assert first is True
    assert second is False
    assert caplog.text.count("reconcile failed") == 1
    assert "gitclock.md" in caplog.text


def test_different_operations_are_not_deduplicated() -> None:
    exc = RuntimeError("boom")

    assert record_error(operation="scan_working_tree", exc=exc)
    assert record_error(operation="polling_tick", exc=exc)


def test_dedupe_can_be_disabled() -> None:
    exc = RuntimeError("boom")

    assert record_error(operation="tick", exc=exc, dedupe_window_seconds=0)
    assert record_error(operation="tick", exc=exc, dedupe_window_seconds=0)


def test_traceback_is_included_on_request(caplog) -> None:  # noqa: ANN001
    try:
        raise ValueError("bad row")
    except ValueError as exc:
        with caplog.at_level(logging.WARNING, logger="gitclock.errors"):
            record_error(operation="render", exc=exc, include_traceback=True)

    assert "Traceback" in caplog.text


def test_remote_errors_keep_status_code() -> None:
    exc = RemoteConflict("stale", status_code=409)

    assert isinstance(exc, RemoteError)
    assert exc.status_code == 409
    assert RemoteError("offline").status_code is None
