#!/usr/bin/env python3
"""
Sync Orchestrator

One sync pass: authenticate, fetch, classify, archive, reconcile against the
CSV baseline, and aggregate into a Summary.

Authentication problems never fail a sync. Without a usable token the summary
is built from the baseline and the archive alone and marked disconnected, with
flags telling the caller whether the operator has to reconnect.
"""

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from ..archive.store import TransactionArchive
from ..baseline.loader import BaselineSource, last_covered_date
from ..classify.classifier import ExpenseClassifier, RuleOutcome
from ..core.dates import format_timestamp
from ..core.errors import (
    ArchiveUnavailable,
    AuthError,
    BaselineUnavailable,
    ProviderUnavailable,
    StepUpRequired,
)
from ..core.models import (
    NEW_LIVE_BUCKET,
    BucketTotal,
    ConnectionState,
    Expense,
    Summary,
    expense_keys,
    sort_newest_first,
)
from ..monzo.auth import AuthManager
from ..monzo.fetcher import TransactionFetcher
from ..monzo.models import MonzoTransaction

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SECONDS = 300
DEFAULT_MAX_WINDOW_DAYS = 90


class ResponseCache:
    """
    Whole-summary cache keyed by look-back window.

    Args:
        ttl_seconds: Entry lifetime; 0 disables caching
        clock: Monotonic seconds, injectable for tests
    """

    def __init__(self, ttl_seconds: int = DEFAULT_CACHE_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, tuple[float, Summary]] = {}

    def get(self, window_days: int) -> tuple[Summary, int] | None:
        """Return (summary, age in whole seconds) for a fresh entry, else None."""
        entry = self._entries.get(window_days)
        if entry is None:
            return None
        stored_at, summary = entry
        age = self._clock() - stored_at
        if age >= self.ttl_seconds:
            del self._entries[window_days]
            return None
        return summary, int(age)

    def put(self, window_days: int, summary: Summary) -> None:
        if self.ttl_seconds > 0:
            self._entries[window_days] = (self._clock(), summary)

    def clear(self) -> None:
        self._entries.clear()


class SyncOrchestrator:
    """
    Produce expense summaries from the baseline, the archive and the live feed.

    Args:
        auth: Token manager
        fetcher: Paginated transaction fetcher
        classifier: Expense rule chain
        archive: Persistent store of classified live expenses
        baseline: CSV baseline source
        cache: Response cache (a fresh one with the default TTL if omitted)
        max_window_days: Largest accepted look-back window
        clock: Returns the current aware UTC datetime (for ``last_updated``)
    """

    def __init__(
        self,
        auth: AuthManager,
        fetcher: TransactionFetcher,
        classifier: ExpenseClassifier,
        archive: TransactionArchive,
        baseline: BaselineSource,
        cache: ResponseCache | None = None,
        max_window_days: int = DEFAULT_MAX_WINDOW_DAYS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.auth = auth
        self.fetcher = fetcher
        self.classifier = classifier
        self.archive = archive
        self.baseline = baseline
        self.cache = cache if cache is not None else ResponseCache()
        self.max_window_days = max_window_days
        self._clock = clock
        self._baseline_expenses: list[Expense] | None = None

    def sync(self, window_days: int, skip_cache: bool = False) -> Summary:
        """
        Run one sync pass.

        Args:
            window_days: Look-back window for the live fetch
            skip_cache: Ignore (but still refresh) the cached summary

        Raises:
            ValueError: If window_days is outside 1..max_window_days
            BaselineUnavailable: If the baseline is unreadable and nothing else
                produced any expenses
        """
        self._check_window(window_days)

        if not skip_cache:
            hit = self.cache.get(window_days)
            if hit is not None:
                summary, age = hit
                logger.debug(f"Serving cached summary ({age}s old)")
                return replace(summary, cached=True, cache_age=age)

        baseline_error: BaselineUnavailable | None = None
        try:
            baseline = self.baseline_expenses()
        except BaselineUnavailable as e:
            logger.error(f"Baseline unavailable: {e}")
            baseline_error = e
            baseline = []

        state = ConnectionState.CONNECTED
        step_up_required = False
        reauthorization_required = False
        try:
            live = self._sync_live(window_days)
        except AuthError as e:
            logger.warning(f"Live sync unavailable, serving baseline and archive: {e}")
            state = ConnectionState.DISCONNECTED
            step_up_required = isinstance(e, StepUpRequired)
            reauthorization_required = e.reauthorization_required
            live = self.archive.load()
        except ProviderUnavailable as e:
            logger.warning(f"Token endpoint unavailable, serving baseline and archive: {e}")
            state = ConnectionState.DISCONNECTED
            live = self.archive.load()

        new_live = self.reconcile(live, baseline)
        if baseline_error is not None and not new_live:
            raise baseline_error

        summary = self._summarize(baseline, new_live, state, step_up_required, reauthorization_required)
        self.cache.put(window_days, summary)
        logger.info(
            f"Sync complete ({state.value}): {summary.count} expenses, "
            f"{len(new_live)} new from Monzo, total {summary.total}"
        )
        return summary

    def explain(self, window_days: int) -> list[tuple[MonzoTransaction, list[RuleOutcome]]]:
        """
        Fetch the window and report every rule's verdict per transaction.

        Raises:
            AuthError: If no usable token can be obtained
            ProviderUnavailable: If the token endpoint cannot be reached
        """
        self._check_window(window_days)
        token = self.auth.get_valid_access_token()
        transactions = self.fetcher.fetch(token, window_days)
        return [(txn, self.classifier.explain(txn)) for txn in transactions]

    def baseline_expenses(self) -> list[Expense]:
        """Baseline expenses, loaded on first use and memoised."""
        if self._baseline_expenses is None:
            self._baseline_expenses = self.baseline.load_baseline()
        return self._baseline_expenses

    @staticmethod
    def reconcile(live: list[Expense], baseline: list[Expense]) -> list[Expense]:
        """
        Drop live expenses the baseline already documents.

        Removes exact (date, merchant, amount) duplicates, then anything dated
        on or before the newest baseline date.
        """
        known = expense_keys(baseline)
        cutoff = last_covered_date(baseline)
        return [e for e in live if e.key not in known and (cutoff is None or e.date > cutoff)]

    def _sync_live(self, window_days: int) -> list[Expense]:
        token = self.auth.get_valid_access_token()
        transactions = self.fetcher.fetch(token, window_days)
        classified = self.classifier.filter_and_convert(transactions)
        try:
            return self.archive.merge_and_persist(classified)
        except ArchiveUnavailable as e:
            logger.error(f"Archive unavailable, using this fetch only: {e}")
            return sort_newest_first(classified)

    def _summarize(
        self,
        baseline: list[Expense],
        new_live: list[Expense],
        state: ConnectionState,
        step_up_required: bool,
        reauthorization_required: bool,
    ) -> Summary:
        buckets: dict[str, BucketTotal] = dict(self.baseline.bucket_totals(baseline))
        live_bucket = BucketTotal()
        for expense in new_live:
            live_bucket.add(expense)
        buckets[NEW_LIVE_BUCKET] = live_bucket

        return Summary(
            expenses=sort_newest_first(baseline + new_live),
            buckets=buckets,
            last_updated=format_timestamp(self._clock()),
            connection_state=state,
            step_up_required=step_up_required,
            reauthorization_required=reauthorization_required,
        )

    def _check_window(self, window_days: int) -> None:
        if not 1 <= window_days <= self.max_window_days:
            raise ValueError(f"window_days must be between 1 and {self.max_window_days}, got {window_days}")
