#!/usr/bin/env python3
"""Tests for the OAuth token manager."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from expenses.core.errors import NotConnected, ProviderHTTPError, ProviderUnavailable, TokenInvalid
from expenses.monzo.auth import AuthManager
from expenses.monzo.vault import MemoryCookieJar, TokenVault, key_from_hex
from tests.fixtures.synthetic_data import TEST_ENCRYPTION_KEY, FakeClock

NOW = datetime(2026, 2, 11, 13, 0, tzinfo=timezone.utc)
SIX_HOURS = 6 * 60 * 60


class FakeOAuth:
    """Scripted token endpoint."""

    def __init__(self, refresh_responses=None, exchange_response=None, refresh_delay: float = 0.0):
        self.refresh_responses = list(refresh_responses or [])
        self.exchange_response = exchange_response or {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": SIX_HOURS,
        }
        self.refresh_delay = refresh_delay
        self.refresh_calls: list[str] = []
        self.exchange_calls: list[str] = []

    def authorization_url(self, state, redirect_uri=None):
        return f"https://auth.example.test/?state={state}"

    def exchange_code(self, code, redirect_uri=None):
        self.exchange_calls.append(code)
        if isinstance(self.exchange_response, Exception):
            raise self.exchange_response
        return self.exchange_response

    def refresh(self, refresh_token):
        self.refresh_calls.append(refresh_token)
        if self.refresh_delay:
            time.sleep(self.refresh_delay)
        response = self.refresh_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def grant(n: int, expires_in: int = SIX_HOURS, with_refresh: bool = True) -> dict:
    data = {"access_token": f"access-{n}", "expires_in": expires_in}
    if with_refresh:
        data["refresh_token"] = f"refresh-{n}"
    return data


@pytest.mark.auth
class TestCodeExchange:
    """Test the authorization-code grant."""

    def setup_method(self):
        self.clock = FakeClock(NOW)
        self.vault = TokenVault(MemoryCookieJar(), key_from_hex(TEST_ENCRYPTION_KEY), clock=self.clock)

    def test_exchange_caches_and_persists(self):
        manager = AuthManager(FakeOAuth(), store=self.vault, clock=self.clock)

        record = manager.exchange_code_for_tokens("code-123")

        assert record.access_token == "access-1"
        assert record.expires_at == NOW + timedelta(seconds=SIX_HOURS)
        assert manager.cached_record == record
        assert self.vault.load().refresh_token == "refresh-1"

    def test_rejected_code_raises_token_invalid(self):
        oauth = FakeOAuth(exchange_response=ProviderHTTPError(400, '{"code": "bad_request.invalid_grant"}'))
        manager = AuthManager(oauth, store=self.vault, clock=self.clock)

        with pytest.raises(TokenInvalid):
            manager.exchange_code_for_tokens("used-code")
        assert self.vault.load() is None

    def test_token_endpoint_outage_propagates(self):
        oauth = FakeOAuth(exchange_response=ProviderHTTPError(503, "unavailable"))
        with pytest.raises(ProviderUnavailable):
            AuthManager(oauth, clock=self.clock).exchange_code_for_tokens("code")

    def test_new_state_is_random(self):
        assert AuthManager.new_state() != AuthManager.new_state()
        assert len(AuthManager.new_state()) >= 32


@pytest.mark.auth
class TestGetValidAccessToken:
    """Test lazy refresh."""

    def setup_method(self):
        self.clock = FakeClock(NOW)
        self.vault = TokenVault(MemoryCookieJar(), key_from_hex(TEST_ENCRYPTION_KEY), clock=self.clock)

    def _connected(self, oauth: FakeOAuth) -> AuthManager:
        manager = AuthManager(oauth, store=self.vault, clock=self.clock)
        manager.exchange_code_for_tokens("code")
        return manager

    def test_no_credentials_raises_not_connected(self):
        with pytest.raises(NotConnected):
            AuthManager(FakeOAuth(), store=self.vault, clock=self.clock).get_valid_access_token()

    def test_fresh_token_is_reused_without_refresh(self):
        oauth = FakeOAuth()
        manager = self._connected(oauth)
        self.clock.advance(60 * 60)

        assert manager.get_valid_access_token() == "access-1"
        assert oauth.refresh_calls == []

    def test_token_inside_margin_is_refreshed(self):
        oauth = FakeOAuth(refresh_responses=[grant(2)])
        manager = self._connected(oauth)
        self.clock.advance(SIX_HOURS - 4 * 60)

        assert manager.get_valid_access_token() == "access-2"
        assert oauth.refresh_calls == ["refresh-1"]
        assert self.vault.load().access_token == "access-2"

    def test_refresh_is_monotonic(self):
        oauth = FakeOAuth(refresh_responses=[grant(2)])
        manager = self._connected(oauth)
        before = manager.cached_record.expires_at
        self.clock.advance(SIX_HOURS)

        manager.get_valid_access_token()

        assert manager.cached_record.expires_at > before

    def test_grant_without_refresh_token_keeps_previous(self):
        oauth = FakeOAuth(refresh_responses=[grant(2, with_refresh=False)])
        manager = self._connected(oauth)
        self.clock.advance(SIX_HOURS)

        manager.get_valid_access_token()

        assert manager.cached_record.refresh_token == "refresh-1"

    def test_session_restored_from_store(self):
        self.vault.save("stored-access", "stored-refresh", SIX_HOURS)
        oauth = FakeOAuth()
        manager = AuthManager(oauth, store=self.vault, clock=self.clock)

        assert manager.get_valid_access_token() == "stored-access"
        assert oauth.refresh_calls == []

    @pytest.mark.parametrize("status", [400, 401, 403])
    def test_rejected_refresh_clears_everything(self, status):
        oauth = FakeOAuth(refresh_responses=[ProviderHTTPError(status, "invalid_grant")])
        manager = self._connected(oauth)
        self.clock.advance(SIX_HOURS)

        with pytest.raises(TokenInvalid) as exc_info:
            manager.get_valid_access_token()

        assert exc_info.value.reauthorization_required
        assert manager.cached_record is None
        assert self.vault.load() is None
        with pytest.raises(NotConnected):
            manager.get_valid_access_token()

    def test_refresh_outage_keeps_credentials(self):
        oauth = FakeOAuth(refresh_responses=[ProviderHTTPError(502, "bad gateway"), grant(2)])
        manager = self._connected(oauth)
        self.clock.advance(SIX_HOURS)

        with pytest.raises(ProviderUnavailable):
            manager.get_valid_access_token()
        assert self.vault.load() is not None

        assert manager.get_valid_access_token() == "access-2"

    def test_has_valid_tokens(self):
        assert not AuthManager(FakeOAuth(), clock=self.clock).has_valid_tokens()
        assert self._connected(FakeOAuth()).has_valid_tokens()


@pytest.mark.auth
class TestStaticCredentials:
    """Test bootstrap tokens supplied through configuration."""

    def setup_method(self):
        self.clock = FakeClock(NOW)

    def test_static_access_token_is_used(self):
        oauth = FakeOAuth()
        manager = AuthManager(oauth, static_access_token="env-access", static_refresh_token="env-refresh", clock=self.clock)

        assert manager.get_valid_access_token() == "env-access"
        assert oauth.refresh_calls == []

    def test_static_refresh_token_alone_refreshes_on_first_use(self):
        oauth = FakeOAuth(refresh_responses=[grant(2)])
        manager = AuthManager(oauth, static_refresh_token="env-refresh", clock=self.clock)

        assert manager.get_valid_access_token() == "access-2"
        assert oauth.refresh_calls == ["env-refresh"]

    def test_rejected_static_credentials_are_not_retried(self):
        oauth = FakeOAuth(refresh_responses=[ProviderHTTPError(401, "expired")])
        manager = AuthManager(oauth, static_refresh_token="env-refresh", clock=self.clock)

        with pytest.raises(TokenInvalid):
            manager.get_valid_access_token()
        with pytest.raises(NotConnected):
            manager.get_valid_access_token()
        assert oauth.refresh_calls == ["env-refresh"]

    def test_disconnect_keeps_static_credentials(self):
        manager = AuthManager(FakeOAuth(), static_access_token="env-access", clock=self.clock)
        manager.disconnect()
        assert manager.get_valid_access_token() == "env-access"


@pytest.mark.auth
class TestForceRefresh:
    """Test refresh after an upstream 401."""

    def setup_method(self):
        self.clock = FakeClock(NOW)
        self.vault = TokenVault(MemoryCookieJar(), key_from_hex(TEST_ENCRYPTION_KEY), clock=self.clock)

    def test_force_refresh_ignores_expiry(self):
        oauth = FakeOAuth(refresh_responses=[grant(2)])
        manager = AuthManager(oauth, store=self.vault, clock=self.clock)
        manager.exchange_code_for_tokens("code")

        assert manager.force_refresh_token(stale_access_token="access-1") == "access-2"
        assert oauth.refresh_calls == ["refresh-1"]

    def test_already_rotated_token_is_reused(self):
        oauth = FakeOAuth(refresh_responses=[grant(2)])
        manager = AuthManager(oauth, store=self.vault, clock=self.clock)
        manager.exchange_code_for_tokens("code")
        manager.force_refresh_token(stale_access_token="access-1")

        # A second caller that also saw the 401 with the old token
        assert manager.force_refresh_token(stale_access_token="access-1") == "access-2"
        assert oauth.refresh_calls == ["refresh-1"]

    def test_force_refresh_without_refresh_token(self):
        manager = AuthManager(FakeOAuth(), static_access_token="env-access", clock=self.clock)
        with pytest.raises(NotConnected):
            manager.force_refresh_token()

    def test_disconnect_clears_store(self):
        manager = AuthManager(FakeOAuth(), store=self.vault, clock=self.clock)
        manager.exchange_code_for_tokens("code")

        manager.disconnect()

        assert manager.cached_record is None
        assert self.vault.load() is None
        with pytest.raises(NotConnected):
            manager.get_valid_access_token()


@pytest.mark.auth
class TestSingleFlightRefresh:
    """Concurrent callers share one refresh."""

    def test_concurrent_callers_refresh_once(self):
        clock = FakeClock(NOW)
        oauth = FakeOAuth(refresh_responses=[grant(2)], refresh_delay=0.05)
        manager = AuthManager(oauth, static_refresh_token="env-refresh", clock=clock)

        results: list[str] = []
        errors: list[Exception] = []
        barrier = threading.Barrier(5)

        def worker():
            barrier.wait()
            try:
                results.append(manager.get_valid_access_token())
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert errors == []
        assert results == ["access-2"] * 5
        assert oauth.refresh_calls == ["env-refresh"]
