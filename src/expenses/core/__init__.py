"""
Core Utilities Package

Shared primitives, models and infrastructure used by every other package.

This package provides:
- Currency handling with integer pence arithmetic
- The normalized Expense record and the sync Summary
- Configuration management for environment-specific settings
- The error taxonomy and blob storage backends
"""

from .blobstore import BlobStore, HttpBlobStore, LocalBlobStore
from .config import (
    BaselineBucket,
    Config,
    Environment,
    get_config,
    reload_config,
)
from .currency import format_pence, parse_pounds_to_pence, pence_to_pounds_str
from .dates import FinancialDate
from .errors import (
    ArchiveUnavailable,
    AuthError,
    BaselineUnavailable,
    ExpensesError,
    NotConnected,
    ProviderHTTPError,
    ProviderUnavailable,
    StepUpRequired,
    TokenInvalid,
)
from .models import BucketTotal, ConnectionState, Expense, Summary
from .money import Money

__all__ = [
    "ArchiveUnavailable",
    "AuthError",
    "BaselineBucket",
    "BaselineUnavailable",
    "BlobStore",
    "BucketTotal",
    "Config",
    "ConnectionState",
    "Environment",
    "Expense",
    "ExpensesError",
    "FinancialDate",
    "HttpBlobStore",
    "LocalBlobStore",
    "Money",
    "NotConnected",
    "ProviderHTTPError",
    "ProviderUnavailable",
    "StepUpRequired",
    "Summary",
    "TokenInvalid",
    "format_pence",
    "get_config",
    "parse_pounds_to_pence",
    "pence_to_pounds_str",
    "reload_config",
]
