#!/usr/bin/env python3
"""
Collaborator wiring: builds the sync stack from a Config.
"""

import logging

import httpx

from ..archive.store import TransactionArchive
from ..baseline.loader import CsvBaselineSource
from ..classify.classifier import ExpenseClassifier
from ..core.blobstore import BlobStore, HttpBlobStore, LocalBlobStore
from ..core.config import Config, Environment
from ..monzo.auth import AuthManager
from ..monzo.client import MonzoClient, MonzoOAuthClient
from ..monzo.fetcher import TransactionFetcher
from ..monzo.vault import FileCookieJar, TokenVault, key_from_hex
from .orchestrator import ResponseCache, SyncOrchestrator

logger = logging.getLogger(__name__)


def build_token_vault(config: Config) -> TokenVault | None:
    """Encrypted token store, or None when no encryption key is configured."""
    if not config.vault.encryption_key:
        logger.warning("TOKEN_ENCRYPTION_KEY not set; tokens will not survive this process")
        return None
    return TokenVault(
        FileCookieJar(config.vault.cookie_file or config.data_dir / "auth" / "cookies.json"),
        key_from_hex(config.vault.encryption_key),
        secure=config.environment == Environment.PRODUCTION,
        max_age_days=config.vault.max_age_days,
    )


def build_auth_manager(config: Config, http: httpx.Client | None = None) -> AuthManager:
    oauth = MonzoOAuthClient(
        client_id=config.monzo.client_id or "",
        client_secret=config.monzo.client_secret or "",
        redirect_uri=config.monzo.redirect_uri,
        api_base=config.monzo.api_base,
        auth_base=config.monzo.auth_base,
        timeout=config.monzo.timeout,
        http=http,
    )
    return AuthManager(
        oauth,
        store=build_token_vault(config),
        static_access_token=config.monzo.access_token,
        static_refresh_token=config.monzo.refresh_token,
    )


def build_monzo_client(config: Config, http: httpx.Client | None = None) -> MonzoClient:
    return MonzoClient(config.monzo.account_id, api_base=config.monzo.api_base, timeout=config.monzo.timeout, http=http)


def build_blob_store(config: Config, http: httpx.Client | None = None) -> BlobStore:
    """Remote blob store when ARCHIVE_BLOB_URL is set, else the local archive directory."""
    if config.archive.blob_url:
        return HttpBlobStore(
            config.archive.blob_url,
            config.archive.blob_token or "",
            timeout=config.monzo.timeout,
            client=http,
        )
    return LocalBlobStore(config.archive.data_dir)


def build_orchestrator(config: Config, http: httpx.Client | None = None) -> SyncOrchestrator:
    """
    Wire every sync collaborator from configuration.

    Args:
        config: Loaded configuration
        http: Shared httpx client (tests pass one built on ``httpx.MockTransport``)
    """
    auth = build_auth_manager(config, http)
    fetcher = TransactionFetcher(
        build_monzo_client(config, http),
        auth=auth,
        page_size=config.monzo.page_size,
        max_iterations=config.monzo.max_iterations,
        backoff_base_seconds=config.monzo.backoff_base_seconds,
        backoff_cap_seconds=config.monzo.backoff_cap_seconds,
    )
    return SyncOrchestrator(
        auth=auth,
        fetcher=fetcher,
        classifier=ExpenseClassifier.from_config(config.classifier),
        archive=TransactionArchive(build_blob_store(config, http), config.archive.blob_path),
        baseline=CsvBaselineSource(config.baseline.csv_path, config.baseline.buckets),
        cache=ResponseCache(config.sync.cache_seconds),
        max_window_days=config.sync.max_window_days,
    )
