#!/usr/bin/env python3
"""
Expense Classification Rules

The ordered rule chain that decides whether a raw Monzo transaction is a
relevant expense. Each rule is a named predicate over (transaction, settings)
that returns True when the transaction passes, so rules can be unit-tested
and tuned one at a time.

The rules are heuristics and misclassify at the margins; the order is fixed so
results are reproducible.
"""

import re
from dataclasses import dataclass, field
from typing import Callable
from zoneinfo import ZoneInfo

from ..core.config import ClassifierConfig
from ..core.dates import FinancialDate
from ..monzo.models import MonzoTransaction

# Transfer, peer-to-peer, refund, income and savings phrasing
EXCLUDED_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"pot_",
        r"\bsavings pot\b",
        r"\btransfer(red)?\b",
        r"\bpayment (to|from)\b",
        r"\b(sent|received) (to|from)\b",
        r"\bsplit with\b",
        r"\bmonzo\.me\b",
        r"\brefund(ed)?\b",
        r"\bcashback\b",
        r"\bcredit\b",
        r"\brevers(al|ed)\b",
        r"\bsalary\b",
        r"\bwages?\b",
        r"\bpayroll\b",
        r"\bdeposit\b",
        r"\binterest\b",
        r"\bdividends?\b",
    )
]

# Transaction rails that only carry transfers
EXCLUDED_SCHEMES = frozenset(
    {
        "uk_retail_pot",
        "payport_faster_payments",
        "faster_payments",
        "bacs",
        "p2p_payment",
    }
)

# Exactly two capitalised words, e.g. "Jane Smith" or "Sean O'Neill"
_NAME_WORD = r"[A-Z](?:[a-z]+|'[A-Z][a-z]+)(?:-[A-Z][a-z]+)?"
PERSON_NAME_PATTERN = re.compile(rf"^{_NAME_WORD} {_NAME_WORD}$")

# Postal areas (outward-code letters) per home region
REGION_POSTCODE_AREAS = {
    "london": frozenset({"E", "EC", "N", "NW", "SE", "SW", "W", "WC"}),
}

REGION_ALIASES = {
    "london": ("london", "city of london", "greater london"),
}

OUTWARD_CODE_PATTERN = re.compile(r"^([A-Z]{1,2})\d")


@dataclass(frozen=True)
class RuleSettings:
    """Resolved, immutable classifier settings."""

    home_region: str = "London"
    timezone: str = "Europe/London"
    weekdays: frozenset[str] = frozenset({"MON", "TUE", "WED", "THU", "FRI"})
    categories: frozenset[str] = frozenset({"eating_out", "groceries", "coffee", "shopping", "general"})
    excluded_payees: tuple[str, ...] = ()
    merchant_allowlist: frozenset[str] = frozenset()
    region_names: tuple[str, ...] = field(default=())
    postcode_areas: frozenset[str] = field(default=frozenset())

    def __post_init__(self) -> None:
        key = self.home_region.casefold()
        if not self.region_names:
            object.__setattr__(self, "region_names", REGION_ALIASES.get(key, (key,)))
        if not self.postcode_areas:
            object.__setattr__(self, "postcode_areas", REGION_POSTCODE_AREAS.get(key, frozenset()))

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> "RuleSettings":
        return cls(
            home_region=config.home_region,
            timezone=config.home_timezone,
            weekdays=frozenset(d.upper() for d in config.weekdays),
            categories=frozenset(config.categories),
            excluded_payees=tuple(p.casefold() for p in config.excluded_payees),
            merchant_allowlist=frozenset(m.casefold() for m in config.merchant_allowlist),
        )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_date(self, txn: MonzoTransaction) -> FinancialDate:
        """Calendar date of the transaction in the home time zone."""
        return FinancialDate.from_timestamp(txn.created, self.zone)


@dataclass(frozen=True)
class Rule:
    """A named predicate; ``check`` returns True when the transaction passes."""

    name: str
    description: str
    check: Callable[[MonzoTransaction, RuleSettings], bool]


def is_debit(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    return txn.amount < 0


def has_no_excluded_pattern(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    text = f"{txn.merchant_name} {txn.description}"
    return not any(p.search(text) for p in EXCLUDED_PATTERNS)


def has_allowed_scheme(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    return (txn.scheme or "").lower() not in EXCLUDED_SCHEMES


def has_merchant(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    return txn.merchant is not None


def is_not_a_person(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    name = txn.merchant_name.strip()
    folded = name.casefold()
    haystack = f"{folded} {txn.description.casefold()}"
    if any(payee and payee in haystack for payee in settings.excluded_payees):
        return False
    if folded in settings.merchant_allowlist:
        return True
    return not PERSON_NAME_PATTERN.match(name)


def is_in_home_region(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    address = txn.address
    if address is None or address.is_empty:
        return True

    place = f"{address.city} {address.region}".casefold()
    if any(alias in place for alias in settings.region_names):
        return True

    outward = address.postcode.strip().upper().split(" ")[0] if address.postcode.strip() else ""
    match = OUTWARD_CODE_PATTERN.match(outward)
    return bool(match and match.group(1) in settings.postcode_areas)


def is_on_workday(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    return settings.local_date(txn).weekday_code in settings.weekdays


def has_allowed_category(txn: MonzoTransaction, settings: RuleSettings) -> bool:
    return txn.category in settings.categories


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("polarity", "only debits are expenses", is_debit),
    Rule("excluded_pattern", "transfer, refund or income wording", has_no_excluded_pattern),
    Rule("excluded_scheme", "transfer-only payment rail", has_allowed_scheme),
    Rule("merchant_present", "no merchant, likely a person-to-person payment", has_merchant),
    Rule("not_a_person", "merchant name looks like an individual", is_not_a_person),
    Rule("home_locality", "outside the home region", is_in_home_region),
    Rule("workday", "not on a working day", is_on_workday),
    Rule("category_allowed", "category not tracked", has_allowed_category),
)
