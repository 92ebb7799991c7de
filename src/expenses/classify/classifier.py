#!/usr/bin/env python3
"""
Expense Classifier

Decides which raw Monzo transactions are work expenses and normalizes the ones
that are into ``Expense`` records.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.config import ClassifierConfig
from ..core.models import GENERAL_CATEGORY, MEALS_CATEGORY, Expense
from ..core.money import Money
from ..monzo.models import MonzoTransaction
from .rules import DEFAULT_RULES, Rule, RuleSettings

logger = logging.getLogger(__name__)

MONZO_PURPOSE = "Recent transaction from Monzo"
MEALS_PROVIDER_CATEGORY = "eating_out"


@dataclass(frozen=True)
class Rejected:
    """A transaction the rule chain turned away."""

    transaction_id: str
    rule: str
    reason: str


@dataclass(frozen=True)
class RuleOutcome:
    """One rule's verdict, as reported by ``explain``."""

    rule: str
    passed: bool
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"rule": self.rule, "passed": self.passed, "description": self.description}


class ExpenseClassifier:
    """
    Apply the ordered rule chain and convert survivors.

    Classification is a pure function of (transaction, settings): no clock,
    no I/O.
    """

    def __init__(self, settings: RuleSettings | None = None, rules: tuple[Rule, ...] = DEFAULT_RULES):
        self.settings = settings or RuleSettings()
        self.rules = rules

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> "ExpenseClassifier":
        return cls(RuleSettings.from_config(config))

    def classify(self, txn: MonzoTransaction) -> Expense | Rejected:
        """Return the normalized expense, or the first rule that rejected it."""
        for rule in self.rules:
            if not rule.check(txn, self.settings):
                return Rejected(transaction_id=txn.id, rule=rule.name, reason=rule.description)
        return self.to_expense(txn)

    def filter_and_convert(self, transactions: list[MonzoTransaction]) -> list[Expense]:
        """Classify a batch, keeping only accepted transactions."""
        expenses: list[Expense] = []
        rejections: dict[str, int] = {}
        for txn in transactions:
            result = self.classify(txn)
            if isinstance(result, Rejected):
                rejections[result.rule] = rejections.get(result.rule, 0) + 1
                continue
            expenses.append(result)

        logger.info(f"Classified {len(transactions)} transactions: {len(expenses)} expenses")
        if rejections:
            logger.debug(f"Rejections by rule: {rejections}")
        return expenses

    def explain(self, txn: MonzoTransaction) -> list[RuleOutcome]:
        """Evaluate every rule independently, without stopping at the first failure."""
        return [RuleOutcome(rule.name, rule.check(txn, self.settings), rule.description) for rule in self.rules]

    def to_expense(self, txn: MonzoTransaction) -> Expense:
        """Normalize an accepted debit into an Expense."""
        is_meal = txn.category == MEALS_PROVIDER_CATEGORY
        return Expense(
            date=self.settings.local_date(txn),
            merchant=txn.merchant_name,
            amount=Money.from_minor_units(txn.amount, currency=txn.currency).abs(),
            currency=txn.currency,
            category=MEALS_CATEGORY if is_meal else GENERAL_CATEGORY,
            expense_type="Meals" if is_meal else "Other",
            purpose=MONZO_PURPOSE,
            location=self._location(txn),
            receipt_attached="No",
            notes=f"Monzo - {txn.category}",
        )

    def _location(self, txn: MonzoTransaction) -> str:
        address = txn.address
        if address is not None:
            if address.short_formatted:
                return address.short_formatted
            if address.city:
                return address.city
        return self.settings.home_region
