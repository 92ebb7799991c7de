"""
Monzo Integration Package

OAuth token lifecycle, encrypted credential storage and paginated transaction
retrieval for a single Monzo account.

This package provides:
- TokenVault: AES-GCM encrypted credential cookies
- AuthManager: code exchange, lazy and forced refresh with single-flight locking
- MonzoClient / MonzoOAuthClient: httpx clients for the API and token endpoint
- TransactionFetcher: bounded cursor pagination with 429 backoff and 401 recapture
"""

from .auth import AuthManager, TokenStore
from .client import MonzoClient, MonzoOAuthClient, TransactionProvider
from .fetcher import TransactionFetcher
from .models import MonzoAccount, MonzoAddress, MonzoMerchant, MonzoTransaction, TokenRecord
from .vault import CookieJar, CookieOptions, FileCookieJar, MemoryCookieJar, TokenVault, key_from_hex

__all__ = [
    "AuthManager",
    "CookieJar",
    "CookieOptions",
    "FileCookieJar",
    "MemoryCookieJar",
    "MonzoAccount",
    "MonzoAddress",
    "MonzoClient",
    "MonzoMerchant",
    "MonzoOAuthClient",
    "MonzoTransaction",
    "TokenRecord",
    "TokenStore",
    "TokenVault",
    "TransactionFetcher",
    "TransactionProvider",
    "key_from_hex",
]
