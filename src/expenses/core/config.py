#!/usr/bin/env python3
"""
Configuration Management for the Expense Dashboard

Handles environment-based configuration with secure defaults and validation.
Supports multiple environments (development, test, production); cookie security
and log formatting depend on the environment.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


@dataclass
class MonzoConfig:
    """Monzo OAuth client and transactions API configuration."""

    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    account_id: str | None = None
    # Bootstrap credentials used when the vault holds nothing
    access_token: str | None = None
    refresh_token: str | None = None
    api_base: str = "https://api.monzo.com"
    auth_base: str = "https://auth.monzo.com"
    timeout: float = 30.0
    page_size: int = 100
    max_iterations: int = 10
    backoff_base_seconds: float = 2.0
    backoff_cap_seconds: float = 30.0


@dataclass
class VaultConfig:
    """Encrypted token cookie configuration."""

    encryption_key: str | None = None
    cookie_file: Path | None = None
    max_age_days: int = 90


@dataclass
class ArchiveConfig:
    """Transaction archive storage configuration."""

    data_dir: Path
    blob_path: str = "transactions/monzo-expenses.json"
    blob_url: str | None = None
    blob_token: str | None = None


@dataclass(frozen=True)
class BaselineBucket:
    """Named, inclusive date range of the CSV baseline that gets its own total."""

    name: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class BaselineConfig:
    """CSV baseline configuration."""

    csv_path: Path | None = None
    buckets: list[BaselineBucket] = field(default_factory=list)


@dataclass
class ClassifierConfig:
    """Rule settings for picking relevant expenses out of the live feed."""

    home_region: str = "London"
    home_timezone: str = "Europe/London"
    weekdays: list[str] = field(default_factory=lambda: ["MON", "TUE", "WED", "THU", "FRI"])
    categories: list[str] = field(
        default_factory=lambda: ["eating_out", "groceries", "coffee", "shopping", "general"]
    )
    excluded_payees: list[str] = field(default_factory=list)
    merchant_allowlist: list[str] = field(default_factory=list)


@dataclass
class SyncConfig:
    """Sync orchestration settings."""

    cache_seconds: int = 300
    default_window_days: int = 30
    max_window_days: int = 90


@dataclass
class Config:
    """
    Main configuration class for the expense dashboard.

    Loads configuration from environment variables with secure defaults
    and validation for each environment type.
    """

    environment: Environment

    data_dir: Path

    monzo: MonzoConfig
    vault: VaultConfig
    archive: ArchiveConfig
    baseline: BaselineConfig
    classifier: ClassifierConfig
    sync: SyncConfig

    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("EXPENSES_ENV", "development"))

        if env == Environment.TEST:
            default_test_dir = Path(tempfile.gettempdir()) / "test_expenses"
            data_dir = Path(os.getenv("EXPENSES_DATA_DIR", str(default_test_dir)))
        else:
            data_dir = Path(os.getenv("EXPENSES_DATA_DIR", "./data")).expanduser().resolve()

        data_dir.mkdir(parents=True, exist_ok=True)

        monzo = MonzoConfig(
            client_id=os.getenv("MONZO_CLIENT_ID"),
            client_secret=os.getenv("MONZO_CLIENT_SECRET"),
            redirect_uri=os.getenv("MONZO_REDIRECT_URI"),
            account_id=os.getenv("MONZO_ACCOUNT_ID"),
            access_token=os.getenv("MONZO_ACCESS_TOKEN"),
            refresh_token=os.getenv("MONZO_REFRESH_TOKEN"),
            timeout=float(os.getenv("MONZO_TIMEOUT", "30")),
            page_size=int(os.getenv("MONZO_PAGE_SIZE", "100")),
            max_iterations=int(os.getenv("MONZO_MAX_ITERATIONS", "10")),
        )

        cookie_file = os.getenv("TOKEN_COOKIE_FILE")
        vault = VaultConfig(
            encryption_key=os.getenv("TOKEN_ENCRYPTION_KEY"),
            cookie_file=Path(cookie_file).expanduser() if cookie_file else data_dir / "auth" / "cookies.json",
        )

        archive = ArchiveConfig(
            data_dir=data_dir / "archive",
            blob_path=os.getenv("ARCHIVE_PATH", "transactions/monzo-expenses.json"),
            blob_url=os.getenv("ARCHIVE_BLOB_URL"),
            blob_token=os.getenv("ARCHIVE_BLOB_TOKEN"),
        )

        csv_path = os.getenv("CSV_PATH")
        baseline = BaselineConfig(
            csv_path=Path(csv_path).expanduser() if csv_path else data_dir / "baseline" / "expenses.csv",
            buckets=_parse_buckets(os.getenv("BASELINE_BUCKETS", "")),
        )

        classifier = ClassifierConfig(
            home_region=os.getenv("HOME_REGION", "London"),
            home_timezone=os.getenv("HOME_TIMEZONE", "Europe/London"),
            weekdays=[d.upper() for d in _parse_list(os.getenv("EXPENSE_WEEKDAYS", "MON,TUE,WED,THU,FRI"))],
            categories=_parse_list(os.getenv("EXPENSE_CATEGORIES", "eating_out,groceries,coffee,shopping,general")),
            excluded_payees=_parse_list(os.getenv("EXCLUDED_PAYEES", "")),
            merchant_allowlist=_parse_list(os.getenv("MERCHANT_ALLOWLIST", "")),
        )

        sync = SyncConfig(
            cache_seconds=int(os.getenv("SYNC_CACHE_SECONDS", "300")),
            default_window_days=int(os.getenv("SYNC_WINDOW_DAYS", "30")),
        )

        return cls(
            environment=env,
            data_dir=data_dir,
            monzo=monzo,
            vault=vault,
            archive=archive,
            baseline=baseline,
            classifier=classifier,
            sync=sync,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.data_dir.exists():
            errors.append(f"data_dir does not exist: {self.data_dir}")

        if self.environment == Environment.PRODUCTION:
            for name, value in [
                ("MONZO_CLIENT_ID", self.monzo.client_id),
                ("MONZO_CLIENT_SECRET", self.monzo.client_secret),
                ("MONZO_REDIRECT_URI", self.monzo.redirect_uri),
                ("MONZO_ACCOUNT_ID", self.monzo.account_id),
                ("TOKEN_ENCRYPTION_KEY", self.vault.encryption_key),
            ]:
                if not value:
                    errors.append(f"{name} is required in production")

        if self.vault.encryption_key and not _is_valid_key(self.vault.encryption_key):
            errors.append("TOKEN_ENCRYPTION_KEY must be 32, 48 or 64 hex characters")

        if self.archive.blob_url and not self.archive.blob_token:
            errors.append("ARCHIVE_BLOB_TOKEN is required when ARCHIVE_BLOB_URL is set")

        try:
            if self.monzo.timeout <= 0:
                errors.append("Monzo timeout must be positive")
            if self.monzo.page_size <= 0:
                errors.append("Monzo page size must be positive")
            if self.monzo.max_iterations <= 0:
                errors.append("Monzo max iterations must be positive")
            if not 1 <= self.sync.default_window_days <= self.sync.max_window_days:
                errors.append(f"Sync window must be between 1 and {self.sync.max_window_days} days")
            if self.sync.cache_seconds < 0:
                errors.append("Sync cache seconds must be non-negative")
        except (ValueError, TypeError) as e:
            errors.append(f"Invalid numeric configuration: {e}")

        return errors

    def oauth_issues(self) -> list[str]:
        """
        Check the OAuth client settings the way the provider will see them.

        Returns problems that would make the authorization redirect or code
        exchange fail, without requiring a production environment.
        """
        issues = []

        if not self.monzo.client_id:
            issues.append("MONZO_CLIENT_ID is missing")
        elif not self.monzo.client_id.startswith("oauth2client_"):
            issues.append("Client ID format looks incorrect (should start with oauth2client_)")

        if not self.monzo.client_secret:
            issues.append("MONZO_CLIENT_SECRET is missing")

        uri = self.monzo.redirect_uri
        if not uri:
            issues.append("MONZO_REDIRECT_URI is missing")
        elif not (uri.startswith("https://") or uri.startswith("http://localhost")):
            issues.append(f"Redirect URI must use https (or http://localhost): {uri}")

        if not self.monzo.account_id:
            issues.append("MONZO_ACCOUNT_ID is missing (run `expenses auth accounts` to list them)")

        if not self.vault.encryption_key:
            issues.append("TOKEN_ENCRYPTION_KEY is missing; tokens cannot be stored")

        return issues

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # httpx logs every request URL at INFO, and ours carry account ids
        if self.environment == Environment.PRODUCTION or level > logging.DEBUG:
            logging.getLogger("httpx").setLevel(logging.WARNING)
            logging.getLogger("httpcore").setLevel(logging.WARNING)

    def get_sensitive_fields(self) -> list:
        """Get list of field names that contain sensitive data."""
        return [
            "monzo.client_secret",
            "monzo.access_token",
            "monzo.refresh_token",
            "vault.encryption_key",
            "archive.blob_token",
        ]

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert configuration to dictionary, optionally excluding sensitive data."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if hasattr(field_value, "__dict__") and not isinstance(field_value, Enum):
                nested_dict: dict[str, Any] = {}
                for nested_name, nested_value in field_value.__dict__.items():
                    full_field_name = f"{field_name}.{nested_name}"

                    if not include_sensitive and full_field_name in self.get_sensitive_fields():
                        nested_dict[nested_name] = "***REDACTED***" if nested_value else None
                    else:
                        nested_dict[nested_name] = _plain(nested_value)

                result[field_name] = nested_dict
            else:
                result[field_name] = _plain(field_value)

        return result


def _plain(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaselineBucket):
        return {"name": value.name, "start": value.start.isoformat(), "end": value.end.isoformat()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _parse_list(value: str, delimiter: str = ",") -> list:
    """Parse comma-separated string into list, handling empty values."""
    if not value:
        return []
    return [item.strip() for item in value.split(delimiter) if item.strip()]


def _parse_buckets(value: str) -> list[BaselineBucket]:
    """
    Parse ``name:YYYY-MM-DD:YYYY-MM-DD`` entries separated by commas.

    Raises:
        ValueError: If an entry is malformed or its range is inverted
    """
    buckets = []
    for entry in _parse_list(value):
        parts = entry.split(":")
        if len(parts) != 3:
            raise ValueError(f"Invalid BASELINE_BUCKETS entry: {entry!r}")
        name, start, end = parts
        bucket = BaselineBucket(name=name.strip(), start=date.fromisoformat(start), end=date.fromisoformat(end))
        if bucket.start > bucket.end:
            raise ValueError(f"Bucket {bucket.name} ends before it starts")
        buckets.append(bucket)
    return buckets


def _is_valid_key(key: str) -> bool:
    return len(key) in (32, 48, 64) and re.fullmatch(r"[0-9a-fA-F]+", key) is not None


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_environment()

        errors = _config.validate()
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        _config.setup_logging()

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()
