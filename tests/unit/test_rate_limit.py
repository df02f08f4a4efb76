"""Unit tests for the fixed-window rate limiter."""

from learnpath.api.middleware.rate_limit import InMemoryRateLimitStore, classify_request


def test_store_blocks_after_limit_within_window():
    store = InMemoryRateLimitStore()
    assert all(store.check_and_incr("api", "1.2.3.4", 3, 60) for _ in range(3))
    assert not store.check_and_incr("api", "1.2.3.4", 3, 60)
    # other clients and scopes are counted separately
    assert store.check_and_incr("api", "5.6.7.8", 3, 60)
    assert store.check_and_incr("ai", "1.2.3.4", 3, 3600)


def test_window_resets(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("learnpath.api.middleware.rate_limit.time.monotonic", lambda: now[0])
    store = InMemoryRateLimitStore()
    assert store.check_and_incr("api", "ip", 1, 60)
    assert not store.check_and_incr("api", "ip", 1, 60)
    now[0] += 61
    assert store.check_and_incr("api", "ip", 1, 60)


def test_cleanup_and_reset():
    store = InMemoryRateLimitStore()
    store.check_and_incr("api", "ip", 1, 60)
    store.cleanup_old(max_age_seconds=-1)
    assert store.check_and_incr("api", "ip", 1, 60)
    store.reset()
    assert store.check_and_incr("api", "ip", 1, 60)


def test_classify_request():
    assert classify_request("/api/v1/resources/step", "POST", "/api/v1") == ("ai", 3600)
    assert classify_request("/api/v1/resources/reported", "GET", "/api/v1") == ("api", 60)
    assert classify_request("/api/v1/learning-path/prune", "POST", "/api/v1") == ("api", 60)
