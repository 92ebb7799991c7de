"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from expenses.core.config import Config
from tests.fixtures.synthetic_data import TEST_ENCRYPTION_KEY, FakeClock, MonotonicClock


# Variables a developer's .env could leak into tests
_ISOLATED_VARIABLES = [
    "MONZO_CLIENT_ID",
    "MONZO_CLIENT_SECRET",
    "MONZO_REDIRECT_URI",
    "MONZO_ACCOUNT_ID",
    "MONZO_ACCESS_TOKEN",
    "MONZO_REFRESH_TOKEN",
    "MONZO_TIMEOUT",
    "MONZO_PAGE_SIZE",
    "MONZO_MAX_ITERATIONS",
    "TOKEN_ENCRYPTION_KEY",
    "TOKEN_COOKIE_FILE",
    "ARCHIVE_BLOB_URL",
    "ARCHIVE_BLOB_TOKEN",
    "ARCHIVE_PATH",
    "CSV_PATH",
    "BASELINE_BUCKETS",
    "HOME_REGION",
    "HOME_TIMEZONE",
    "EXPENSE_WEEKDAYS",
    "EXPENSE_CATEGORIES",
    "EXCLUDED_PAYEES",
    "MERCHANT_ALLOWLIST",
    "SYNC_CACHE_SECONDS",
    "SYNC_WINDOW_DAYS",
    "LOG_LEVEL",
    "DEBUG",
]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Set up test environment variables."""
    # Ensure tests don't use real data or real credentials
    for name in _ISOLATED_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EXPENSES_ENV", "test")
    monkeypatch.setenv("EXPENSES_DATA_DIR", str(tmp_path / "expenses_data"))


@pytest.fixture
def monzo_env(monkeypatch):
    """Complete, valid Monzo settings."""
    monkeypatch.setenv("MONZO_CLIENT_ID", "oauth2client_00009TestClient")
    monkeypatch.setenv("MONZO_CLIENT_SECRET", "mnzconf.test-secret")
    monkeypatch.setenv("MONZO_REDIRECT_URI", "http://localhost:3000/api/auth/callback")
    monkeypatch.setenv("MONZO_ACCOUNT_ID", "acc_00009TestAccount")
    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)


@pytest.fixture
def test_config(monzo_env) -> Config:
    """Configuration built from the isolated test environment."""
    return Config.from_environment()


@pytest.fixture
def clock() -> FakeClock:
    """Wall clock fixed at Wednesday 2026-02-11 13:00 UTC."""
    return FakeClock(datetime(2026, 2, 11, 13, 0, tzinfo=timezone.utc))


@pytest.fixture
def monotonic() -> MonotonicClock:
    return MonotonicClock()


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for complete workflows")
    config.addinivalue_line("markers", "currency: Tests for currency handling and precision")
    config.addinivalue_line("markers", "monzo: Tests for the Monzo client and fetcher")
    config.addinivalue_line("markers", "auth: Tests for OAuth token management")
    config.addinivalue_line("markers", "classifier: Tests for expense classification rules")
    config.addinivalue_line("markers", "archive: Tests for the transaction archive")
    config.addinivalue_line("markers", "sync: Tests for sync orchestration")
