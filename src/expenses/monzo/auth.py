#!/usr/bin/env python3
"""
Monzo OAuth2 Token Management

Owns the in-process token cache and keeps it usable: lazy refresh shortly
before expiry, forced refresh after an upstream 401, and one-shot
authorization-code exchange. Every successful exchange or refresh is mirrored
to the token store so a restarted process can pick the session back up.

Refreshes are single-flight: all token work happens under one lock, so callers
that arrive while a refresh is running wait and then reuse its result instead
of spending the (rotating) refresh token a second time.
"""

import logging
import secrets
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from ..core.errors import AuthError, NotConnected, ProviderHTTPError, ProviderUnavailable, TokenInvalid
from .models import TokenRecord

logger = logging.getLogger(__name__)

# A cached token must stay valid at least this long to be handed out
REFRESH_MARGIN_SECONDS = 5 * 60

# Bootstrap access tokens from the environment carry no expiry; assume this
STATIC_TOKEN_LIFETIME_SECONDS = 5 * 60 * 60

# Token endpoint answers that mean the credential itself is dead
REJECTION_STATUSES = frozenset({400, 401, 403})

SOURCE_CACHE = "cache"
SOURCE_STORE = "store"
SOURCE_STATIC = "static"


class TokenStore(Protocol):
    """Persistence for OAuth credentials."""

    def save(self, access_token: str, refresh_token: str, expires_in_seconds: int) -> None: ...

    def load(self) -> TokenRecord | None: ...

    def clear(self) -> None: ...


class OAuthProvider(Protocol):
    """Token endpoint operations the manager depends on."""

    def authorization_url(self, state: str, redirect_uri: str | None = None) -> str: ...

    def exchange_code(self, code: str, redirect_uri: str | None = None) -> dict[str, Any]: ...

    def refresh(self, refresh_token: str) -> dict[str, Any]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthManager:
    """
    Token lifecycle for a single operator and a single Monzo account.

    Args:
        oauth: Token endpoint client
        store: Encrypted credential store (optional; without it tokens only
            live for the lifetime of the process)
        static_access_token: Bootstrap access token from configuration
        static_refresh_token: Bootstrap refresh token from configuration
        clock: Returns the current aware UTC datetime
    """

    def __init__(
        self,
        oauth: OAuthProvider,
        store: TokenStore | None = None,
        static_access_token: str | None = None,
        static_refresh_token: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._oauth = oauth
        self._store = store
        self._static_access_token = static_access_token
        self._static_refresh_token = static_refresh_token
        self._static_rejected = False
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: TokenRecord | None = None

    @property
    def cached_record(self) -> TokenRecord | None:
        return self._cache

    @staticmethod
    def new_state() -> str:
        """Random CSRF state for the authorization redirect."""
        return secrets.token_urlsafe(24)

    def authorization_url(self, state: str, redirect_uri: str | None = None) -> str:
        return self._oauth.authorization_url(state, redirect_uri)

    def exchange_code_for_tokens(self, code: str, redirect_uri: str | None = None) -> TokenRecord:
        """
        Complete the authorization-code grant.

        Raises:
            TokenInvalid: If the provider rejects the code
            ProviderUnavailable: If the token endpoint cannot be reached
        """
        with self._lock:
            try:
                grant = self._oauth.exchange_code(code, redirect_uri)
            except ProviderHTTPError as e:
                if e.status_code in REJECTION_STATUSES:
                    raise TokenInvalid(f"Authorization code rejected: {e.body[:200]}") from e
                raise

            record = TokenRecord.from_grant(grant, self._clock())
            self._cache = record
            self._static_rejected = False
            self._persist(record)
            logger.info("Monzo authorization completed; access token expires at %s", record.expires_at)
            return record

    def get_valid_access_token(self) -> str:
        """
        Return an access token valid for at least five more minutes.

        Raises:
            NotConnected: If no credentials are available anywhere
            TokenInvalid: If a needed refresh was rejected
            ProviderUnavailable: If the token endpoint cannot be reached
        """
        with self._lock:
            record, source = self._current_record()
            if record is None:
                raise NotConnected("No Monzo credentials available; authorization required")

            if record.access_token and not record.expires_within(REFRESH_MARGIN_SECONDS, self._clock()):
                self._cache = record
                return record.access_token

            logger.info("Access token expired or expiring soon (source: %s), refreshing", source)
            return self._refresh(record, source).access_token

    def force_refresh_token(self, stale_access_token: str | None = None) -> str:
        """
        Refresh regardless of expiry, in reaction to an upstream 401.

        If ``stale_access_token`` is given and the cache already holds a
        different, still-valid token, another caller has refreshed in the
        meantime and that token is returned without a provider call.

        Raises:
            NotConnected: If no refresh token is available anywhere
            TokenInvalid: If the provider rejects the refresh
            ProviderUnavailable: If the token endpoint cannot be reached
        """
        with self._lock:
            cached = self._cache
            if (
                stale_access_token
                and cached is not None
                and cached.access_token != stale_access_token
                and not cached.expires_within(REFRESH_MARGIN_SECONDS, self._clock())
            ):
                logger.debug("Token already rotated by a concurrent caller")
                return cached.access_token

            record, source = self._current_record()
            if record is None or not record.refresh_token:
                raise NotConnected("No Monzo refresh token available; authorization required")

            return self._refresh(record, source).access_token

    def has_valid_tokens(self) -> bool:
        """True if a usable access token can be obtained right now."""
        try:
            self.get_valid_access_token()
        except (AuthError, ProviderUnavailable):
            return False
        return True

    def disconnect(self) -> None:
        """Forget the session: clear the cache and the stored credentials."""
        with self._lock:
            self._cache = None
            if self._store is not None:
                self._store.clear()
            logger.info("Monzo session cleared")

    def _current_record(self) -> tuple[TokenRecord | None, str]:
        """Best available credentials: cache, then store, then static bootstrap."""
        if self._cache is not None:
            return self._cache, SOURCE_CACHE

        if self._store is not None:
            stored = self._store.load()
            if stored is not None:
                return stored, SOURCE_STORE

        if not self._static_rejected:
            now = self._clock()
            if self._static_access_token:
                return (
                    TokenRecord(
                        access_token=self._static_access_token,
                        refresh_token=self._static_refresh_token or "",
                        expires_at=now + timedelta(seconds=STATIC_TOKEN_LIFETIME_SECONDS),
                    ),
                    SOURCE_STATIC,
                )
            if self._static_refresh_token:
                # No access token yet: already expired, so the first use refreshes
                return TokenRecord(access_token="", refresh_token=self._static_refresh_token, expires_at=now), SOURCE_STATIC

        return None, ""

    def _refresh(self, record: TokenRecord, source: str) -> TokenRecord:
        """Run a refresh grant. Caller holds the lock."""
        if not record.refresh_token:
            self._invalidate(source)
            raise TokenInvalid("Access token expired and no refresh token is available")

        try:
            grant = self._oauth.refresh(record.refresh_token)
        except ProviderHTTPError as e:
            if e.status_code in REJECTION_STATUSES:
                logger.warning("Monzo rejected the refresh token (HTTP %d, source: %s)", e.status_code, source)
                self._invalidate(source)
                raise TokenInvalid("Monzo rejected the refresh token; re-authorization required") from e
            raise

        refreshed = TokenRecord.from_grant(grant, self._clock())
        if not refreshed.refresh_token:
            refreshed = replace(refreshed, refresh_token=record.refresh_token)

        self._cache = refreshed
        self._persist(refreshed)
        logger.info("Token refreshed successfully, expires at %s", refreshed.expires_at)
        return refreshed

    def _invalidate(self, source: str) -> None:
        self._cache = None
        if source == SOURCE_STATIC:
            self._static_rejected = True
            return
        if self._store is not None:
            try:
                self._store.clear()
            except Exception as e:  # noqa: BLE001 - store errors must not mask the auth error
                logger.warning(f"Failed to clear stored tokens: {e}")

    def _persist(self, record: TokenRecord) -> None:
        if self._store is None:
            return
        try:
            self._store.save(record.access_token, record.refresh_token, record.seconds_remaining(self._clock()))
        except Exception as e:  # noqa: BLE001 - the in-process cache stays authoritative
            logger.warning(f"Failed to persist refreshed tokens: {e}")
