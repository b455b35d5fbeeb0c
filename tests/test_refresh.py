from __future__ import annotations

import threading

import pytest

from club_finance.refresh import RequestTracker, fetch_all


def test_stale_token_result_is_discarded() -> None:
    tracker = RequestTracker()
    applied = []

    first = tracker.begin("payments")
    second = tracker.begin("payments")

    assert not tracker.apply(first, "january", applied.append)
    assert tracker.apply(second, "february", applied.append)
    assert applied == ["february"]


def test_tokens_are_tracked_per_key() -> None:
    tracker = RequestTracker()
    dashboard = tracker.begin("dashboard")
    tracker.begin("budgets")
    assert tracker.is_current(dashboard)


def test_newer_request_started_during_fetch_wins() -> None:
    tracker = RequestTracker()
    applied = []

    def slow_fetch():
        # a newer selection arrives while this fetch is still outstanding
        tracker.run("payments", lambda: "newer", applied.append)
        return "older"

    assert not tracker.run("payments", slow_fetch, applied.append)
    assert applied == ["newer"]


def test_fetch_all_runs_concurrently_and_keys_results() -> None:
    barrier = threading.Barrier(2, timeout=5)

    def wait_then(value):
        def fetch():
            barrier.wait()
            return value
        return fetch

    results = fetch_all({"members": wait_then([1, 2]), "payments": wait_then([])})
    assert results == {"members": [1, 2], "payments": []}
    assert fetch_all({}) == {}


def test_fetch_all_propagates_errors() -> None:
    def fail():
        raise RuntimeError("store down")

    with pytest.raises(RuntimeError, match="store down"):
        fetch_all({"ok": lambda: 1, "bad": fail})
