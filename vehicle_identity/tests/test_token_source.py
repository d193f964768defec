"""Tests for ReuseTokenSource: reuse, refresh, invalidation callback."""
import threading
import time

import pytest

from vehicle_identity.errors import TokenRefreshError
from vehicle_identity.oauth_token import OAuthToken
from vehicle_identity.token_source import ReuseTokenSource


class Refresher:
    def __init__(self, result=None, delay: float = 0.0):
        self.result = result
        self.delay = delay
        self.calls: list[OAuthToken | None] = []

    def __call__(self, current):
        self.calls.append(current)
        if self.delay:
            time.sleep(self.delay)
        if self.result is None:
            raise TokenRefreshError("refresh rejected")
        return self.result


def test_valid_token_reused_without_refresh(make_token):
    refresher = Refresher()
    ts = ReuseTokenSource(refresher)
    token = make_token()
    ts.apply(token)
    assert ts.token() is token
    assert ts.token() is token
    assert refresher.calls == []


def test_apply_none_then_token_attempts_refresh(make_token):
    refresher = Refresher()
    invalid = []
    ts = ReuseTokenSource(refresher, lambda: invalid.append(True))
    ts.apply(make_token())
    ts.apply(None)
    with pytest.raises(TokenRefreshError):
        ts.token()
    assert refresher.calls == [None]
    # Already logged out: clearing is not a new transition
    assert invalid == []


def test_expired_token_refreshed_and_cached(make_token):
    fresh = make_token(access="at-2", refresh="rt-2")
    refresher = Refresher(result=fresh)
    refreshed = []
    ts = ReuseTokenSource(refresher, on_refresh=refreshed.append)
    expired = make_token(expires_in=-60)
    ts.apply(expired)

    assert ts.token().access_token == "at-2"
    assert ts.token().access_token == "at-2"
    assert refresher.calls == [expired]
    assert len(refreshed) == 1


def test_refresh_failure_clears_and_notifies_once(make_token):
    refresher = Refresher()
    invalid = []
    ts = ReuseTokenSource(refresher, lambda: invalid.append(True))
    ts.apply(make_token(expires_in=-60))

    with pytest.raises(TokenRefreshError, match="refresh rejected"):
        ts.token()
    assert not ts.has_token
    with pytest.raises(TokenRefreshError):
        ts.token()
    assert invalid == [True]
    assert refresher.calls[1] is None


def test_apply_rearms_invalidation(make_token):
    invalid = []
    ts = ReuseTokenSource(Refresher(), lambda: invalid.append(True))
    for _ in range(2):
        ts.apply(make_token(expires_in=-60))
        with pytest.raises(TokenRefreshError):
            ts.token()
    assert invalid == [True, True]


def test_refreshed_token_keeps_refresh_token_when_omitted(make_token):
    ts = ReuseTokenSource(Refresher(result=make_token(access="at-2", refresh="")))
    ts.apply(make_token(refresh="rt-keep", expires_in=-60))
    assert ts.token().refresh_token == "rt-keep"


def test_invalid_refresh_result_is_failure(make_token):
    invalid = []
    ts = ReuseTokenSource(Refresher(result=make_token(expires_in=-60)), lambda: invalid.append(True))
    ts.apply(make_token(expires_in=-60))
    with pytest.raises(TokenRefreshError):
        ts.token()
    assert invalid == [True]


def test_callback_may_reenter_source(make_token):
    ts = ReuseTokenSource(Refresher())
    ts._on_invalid = lambda: ts.apply(None)
    ts.apply(make_token(expires_in=-60))
    with pytest.raises(TokenRefreshError):
        ts.token()
    assert not ts.has_token


def test_concurrent_callers_refresh_once(make_token):
    refresher = Refresher(result=make_token(access="at-2"), delay=0.05)
    ts = ReuseTokenSource(refresher)
    ts.apply(make_token(expires_in=-60))
    results = []

    def worker():
        results.append(ts.token().access_token)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["at-2"] * 5
    assert len(refresher.calls) == 1
