#!/usr/bin/env python3
"""
Monzo Domain Models

Type-safe models representing Monzo API data structures.
These models stay true to the API format; amounts keep Monzo's sign convention
(negative = money leaving the account).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ..core.currency import DEFAULT_CURRENCY
from ..core.dates import parse_timestamp


@dataclass(frozen=True)
class MonzoAddress:
    """Merchant address as returned with ``expand[]=merchant``."""

    city: str = ""
    region: str = ""
    postcode: str = ""
    short_formatted: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonzoAddress":
        return cls(
            city=data.get("city") or "",
            region=data.get("region") or "",
            postcode=data.get("postcode") or "",
            short_formatted=data.get("short_formatted") or "",
            country=data.get("country") or "",
        )

    @property
    def is_empty(self) -> bool:
        return not any([self.city, self.region, self.postcode, self.short_formatted])


@dataclass(frozen=True)
class MonzoMerchant:
    """Merchant attached to a card transaction."""

    id: str | None = None
    name: str | None = None
    online: bool = False
    category: str | None = None
    address: MonzoAddress | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | str) -> "MonzoMerchant":
        """
        Create MonzoMerchant from the API value.

        Without ``expand[]=merchant`` Monzo returns only the merchant id string.
        """
        if isinstance(data, str):
            return cls(id=data)
        address = data.get("address")
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            online=bool(data.get("online", False)),
            category=data.get("category"),
            address=MonzoAddress.from_dict(address) if isinstance(address, dict) else None,
        )


@dataclass(frozen=True)
class MonzoTransaction:
    """
    Transaction from the Monzo ``/transactions`` endpoint.

    ``amount`` is in signed minor units: -850 is £8.50 spent, 5000 is £50 received.
    """

    id: str
    created: str
    description: str
    amount: int
    category: str
    currency: str = DEFAULT_CURRENCY
    merchant: MonzoMerchant | None = None
    scheme: str | None = None
    notes: str = ""
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonzoTransaction":
        """
        Create MonzoTransaction from API dict.

        Raises:
            KeyError: If ``created`` or ``amount`` is missing
            ValueError: If ``created`` is not an RFC3339 timestamp
        """
        created = data["created"]
        if not isinstance(created, str):
            raise ValueError(f"created must be a timestamp string, got {created!r}")
        parse_timestamp(created)

        merchant = data.get("merchant")
        return cls(
            id=data.get("id") or "",
            created=created,
            description=data.get("description") or "",
            amount=int(data["amount"]),
            category=data.get("category") or "",
            currency=data.get("currency") or DEFAULT_CURRENCY,
            merchant=MonzoMerchant.from_api(merchant) if merchant else None,
            scheme=data.get("scheme"),
            notes=data.get("notes") or "",
            metadata=dict(data.get("metadata") or {}),
        )

    @property
    def created_at(self) -> datetime:
        return parse_timestamp(self.created)

    @property
    def merchant_name(self) -> str:
        """Merchant display name, falling back to the raw description."""
        if self.merchant and self.merchant.name:
            return self.merchant.name
        return self.description

    @property
    def address(self) -> MonzoAddress | None:
        return self.merchant.address if self.merchant else None

    @property
    def cursor(self) -> str:
        """Pagination cursor for the page that follows this transaction."""
        return self.id or self.created


@dataclass(frozen=True)
class MonzoAccount:
    """Account from the Monzo ``/accounts`` endpoint."""

    id: str
    description: str
    type: str
    closed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonzoAccount":
        return cls(
            id=data["id"],
            description=data.get("description") or "",
            type=data.get("type") or "",
            closed=bool(data.get("closed", False)),
        )


@dataclass(frozen=True)
class TokenRecord:
    """OAuth credentials with an absolute expiry."""

    access_token: str
    refresh_token: str
    expires_at: datetime

    @classmethod
    def from_grant(cls, data: dict[str, Any], now: datetime) -> "TokenRecord":
        """
        Build a record from a token endpoint response.

        Raises:
            KeyError: If the response lacks access_token or expires_in
        """
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            expires_at=now + timedelta(seconds=int(data["expires_in"])),
        )

    def expires_within(self, seconds: float, now: datetime | None = None) -> bool:
        """True when the access token expires less than ``seconds`` from ``now``."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now + timedelta(seconds=seconds)

    def seconds_remaining(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.expires_at - now).total_seconds()))

    def __repr__(self) -> str:
        return f"TokenRecord(access_token='***', refresh_token='***', expires_at={self.expires_at!r})"
