#!/usr/bin/env python3
"""
Transaction Fetcher

Paginated retrieval of Monzo transactions for a look-back window.

Pagination is bounded no matter how the provider behaves: every request,
including rate-limited retries, counts against ``max_iterations``, and a page
made entirely of already-seen ids ends the loop. Failures other than
authentication are soft: whatever was accumulated is returned.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ..core.errors import ProviderHTTPError, ProviderUnavailable, StepUpRequired, TokenInvalid
from .auth import AuthManager
from .client import TransactionProvider
from .models import MonzoTransaction

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_ITERATIONS = 10
DEFAULT_BACKOFF_BASE_SECONDS = 2.0
DEFAULT_BACKOFF_CAP_SECONDS = 30.0


class _Unauthorized(Exception):
    """Internal signal: the provider answered 401 mid-pagination."""


class TransactionFetcher:
    """
    Fetch raw transactions with cursor pagination, 429 backoff and 401 recapture.

    Args:
        provider: Page source (normally ``MonzoClient``)
        auth: Token manager used to force a refresh after a 401; without one a
            401 is immediately fatal
        page_size: Transactions requested per page
        max_iterations: Upper bound on requests per fetch attempt
        backoff_base_seconds: First 429 wait when no Retry-After is sent
        backoff_cap_seconds: Longest single 429 wait
        clock: Returns the current aware UTC datetime
        sleep: Blocking sleep, injectable for tests
    """

    def __init__(
        self,
        provider: TransactionProvider,
        auth: AuthManager | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
        backoff_cap_seconds: float = DEFAULT_BACKOFF_CAP_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if page_size <= 0 or max_iterations <= 0:
            raise ValueError("page_size and max_iterations must be positive")
        self.provider = provider
        self.auth = auth
        self.page_size = page_size
        self.max_iterations = max_iterations
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_cap_seconds = backoff_cap_seconds
        self._clock = clock
        self._sleep = sleep

    def fetch(self, access_token: str, window_days: int) -> list[MonzoTransaction]:
        """
        Fetch all transactions created in the last ``window_days`` days.

        On a 401 the token is force-refreshed once and the whole fetch is
        retried; a second 401 is fatal.

        Raises:
            TokenInvalid: If the provider keeps answering 401
            StepUpRequired: If the provider demands strong customer authentication
            NotConnected: If a refresh was needed but no credentials exist
        """
        if window_days <= 0:
            raise ValueError(f"window_days must be positive, got {window_days}")

        since = self._clock() - timedelta(days=window_days)
        try:
            return self._paginate(access_token, since)
        except _Unauthorized:
            if self.auth is None:
                raise TokenInvalid("Monzo rejected the access token") from None
            logger.info("Monzo answered 401; forcing a token refresh and retrying")

        fresh_token = self.auth.force_refresh_token(stale_access_token=access_token)
        try:
            return self._paginate(fresh_token, since)
        except _Unauthorized:
            raise TokenInvalid("Monzo rejected the refreshed access token") from None

    def _paginate(self, access_token: str, since: datetime) -> list[MonzoTransaction]:
        collected: list[MonzoTransaction] = []
        seen_ids: set[str] = set()
        cursor: str | None = None
        backoff = self.backoff_base_seconds
        iteration = 0

        while iteration < self.max_iterations:
            iteration += 1
            try:
                page = self.provider.list_transactions(access_token, since, cursor=cursor, limit=self.page_size)
            except ProviderHTTPError as e:
                if e.status_code == 401:
                    raise _Unauthorized() from e
                if e.is_step_up:
                    raise StepUpRequired("Monzo requires strong customer authentication") from e
                if e.status_code == 429:
                    if iteration >= self.max_iterations:
                        logger.warning("Rate limited on the final allowed request; stopping pagination")
                        break
                    wait = self._rate_limit_wait(e.retry_after, backoff)
                    backoff = min(backoff * 2, self.backoff_cap_seconds)
                    logger.info(f"Rate limited, waiting {wait:.1f}s before retry")
                    self._sleep(wait)
                    continue
                logger.error(f"Monzo API error {e.status_code}; returning {len(collected)} transactions fetched so far")
                break
            except ProviderUnavailable as e:
                logger.error(f"Monzo API unavailable ({e}); returning {len(collected)} transactions fetched so far")
                break

            backoff = self.backoff_base_seconds
            if not page:
                break

            transactions = self._parse_page(page)
            page_ids = {t.id for t in transactions if t.id}
            if page_ids and page_ids <= seen_ids:
                logger.warning("Page contained only already-seen transactions; stopping pagination")
                break

            for txn in transactions:
                if txn.id and txn.id in seen_ids:
                    continue
                if txn.id:
                    seen_ids.add(txn.id)
                collected.append(txn)

            if len(page) < self.page_size:
                break

            if not transactions:
                break
            cursor = transactions[-1].cursor
        else:
            logger.warning(f"Stopped pagination after {self.max_iterations} requests")

        logger.info(f"Fetched {len(collected)} Monzo transactions in {iteration} requests")
        return collected

    def _rate_limit_wait(self, retry_after: float | None, backoff: float) -> float:
        if retry_after is not None:
            return min(retry_after, self.backoff_cap_seconds)
        return min(backoff, self.backoff_cap_seconds)

    @staticmethod
    def _parse_page(page: list[dict[str, Any]]) -> list[MonzoTransaction]:
        transactions = []
        for raw in page:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object transaction entry: {raw!r}")
                continue
            try:
                transactions.append(MonzoTransaction.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed transaction {raw.get('id', 'unknown')}: {e}")
        return transactions
