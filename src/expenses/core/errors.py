#!/usr/bin/env python3
"""
Error Taxonomy

Exceptions raised across the sync pipeline. Authentication errors tell the caller
whether the operator has to reconnect; provider and storage errors are soft and
are normally absorbed by the sync orchestrator.
"""


class ExpensesError(Exception):
    """Base class for all expense dashboard errors."""


class AuthError(ExpensesError):
    """Base class for errors that leave the dashboard without live bank access."""

    reauthorization_required = True


class NotConnected(AuthError):
    """No credentials are available anywhere; authorization has to be completed."""


class TokenInvalid(AuthError):
    """Credentials existed but the provider rejected them or their refresh."""


class StepUpRequired(AuthError):
    """The provider wants strong customer authentication before releasing data."""


class ProviderUnavailable(ExpensesError):
    """The banking API could not be reached or answered with an unexpected error."""


class ProviderHTTPError(ProviderUnavailable):
    """Non-2xx response from the banking API."""

    def __init__(self, status_code: int, body: str = "", retry_after: float | None = None):
        self.status_code = status_code
        self.body = body
        self.retry_after = retry_after
        super().__init__(f"Monzo API returned HTTP {status_code}: {body[:200]}")

    @property
    def is_step_up(self) -> bool:
        """True for the 403 Monzo sends once the post-SCA access window has lapsed."""
        return self.status_code == 403 and "verification_required" in self.body


class ArchiveUnavailable(ExpensesError):
    """The transaction archive storage could not be read or written."""


class BaselineUnavailable(ExpensesError):
    """The CSV baseline exists but could not be read."""
