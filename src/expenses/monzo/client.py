#!/usr/bin/env python3
"""
Monzo HTTP Clients

Thin synchronous httpx wrappers around the two Monzo surfaces the dashboard
talks to: the OAuth token endpoint and the transactions/accounts API. Every
request carries a timeout. Status codes are not interpreted beyond raising
``ProviderHTTPError``; retry and re-authentication policy lives in the
token manager and the fetcher.
"""

import logging
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from ..core.dates import format_timestamp
from ..core.errors import ProviderHTTPError, ProviderUnavailable
from .models import MonzoAccount

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.monzo.com"
DEFAULT_AUTH_BASE = "https://auth.monzo.com"


def _retry_after(response: httpx.Response) -> float | None:
    """Parse a Retry-After header given in seconds."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise ProviderHTTPError(response.status_code, response.text, _retry_after(response))


class TransactionProvider(Protocol):
    """Source of raw transaction pages."""

    def list_transactions(
        self,
        access_token: str,
        since: datetime,
        cursor: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]: ...


class MonzoOAuthClient:
    """Client for the Monzo OAuth2 authorization and token endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        auth_base: str = DEFAULT_AUTH_BASE,
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.api_base = api_base.rstrip("/")
        self.auth_base = auth_base.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)

    def authorization_url(self, state: str, redirect_uri: str | None = None) -> str:
        """URL the operator is sent to in order to grant access."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri or "",
            "response_type": "code",
            "state": state,
        }
        return f"{self.auth_base}/?{urlencode(params)}"

    def _token_request(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            response = self._http.post(f"{self.api_base}/oauth2/token", data=form)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Monzo token endpoint unreachable: {e}") from e
        _raise_for_status(response)
        return response.json()

    def exchange_code(self, code: str, redirect_uri: str | None = None) -> dict[str, Any]:
        """Trade an authorization code for an access/refresh token pair."""
        return self._token_request(
            {
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": redirect_uri or self.redirect_uri or "",
                "code": code,
            }
        )

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        """Trade a refresh token for a new token pair."""
        return self._token_request(
            {
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
            }
        )


class MonzoClient:
    """Client for the Monzo accounts and transactions API."""

    def __init__(
        self,
        account_id: str | None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ):
        self.account_id = account_id
        self.api_base = api_base.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)

    def _get(self, access_token: str, path: str, params: list[tuple[str, str]] | None = None) -> dict[str, Any]:
        try:
            response = self._http.get(
                f"{self.api_base}{path}",
                params=params,
                headers={"Authorization": f"Bearer {access_token}", "Cache-Control": "no-store"},
            )
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Monzo API unreachable: {e}") from e
        _raise_for_status(response)
        return response.json()

    def list_transactions(
        self,
        access_token: str,
        since: datetime,
        cursor: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """
        Fetch one page of transactions, oldest first.

        Monzo's ``since`` accepts either a timestamp or a transaction id; a
        cursor, when given, replaces the window start so the next page begins
        after the cursor transaction.

        Raises:
            ProviderHTTPError: On any non-2xx response
            ProviderUnavailable: On transport failure, timeout or a missing account id
        """
        if not self.account_id:
            raise ProviderUnavailable("MONZO_ACCOUNT_ID is not configured")

        params = [
            ("account_id", self.account_id),
            ("since", cursor or format_timestamp(since)),
            ("limit", str(limit)),
            ("expand[]", "merchant"),
        ]
        data = self._get(access_token, "/transactions", params)
        transactions = data.get("transactions")
        return transactions if isinstance(transactions, list) else []

    def list_accounts(self, access_token: str) -> list[MonzoAccount]:
        """List the accounts the token can see."""
        data = self._get(access_token, "/accounts")
        return [MonzoAccount.from_dict(a) for a in data.get("accounts", [])]

    def whoami(self, access_token: str) -> dict[str, Any]:
        """Return Monzo's view of the token (authenticated flag, user and client ids)."""
        return self._get(access_token, "/ping/whoami")
