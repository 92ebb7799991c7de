#!/usr/bin/env python3
"""Tests for ExpenseClassifier: rule chaining and conversion."""

import pytest

from expenses.classify.classifier import ExpenseClassifier, Rejected
from expenses.core.config import ClassifierConfig
from expenses.core.models import Expense
from expenses.core.money import Money
from tests.fixtures.synthetic_data import MANCHESTER_ADDRESS, make_transaction


@pytest.mark.classifier
class TestClassify:
    """Test accept/reject decisions."""

    def setup_method(self):
        self.classifier = ExpenseClassifier()

    def test_weekday_london_lunch_is_accepted(self):
        result = self.classifier.classify(make_transaction())
        assert isinstance(result, Expense)

    def test_first_failing_rule_is_reported(self):
        # Credit, on a Saturday, in Manchester: polarity fails first
        txn = make_transaction(amount=500, created="2026-02-14T12:00:00.000Z", address=MANCHESTER_ADDRESS)
        result = self.classifier.classify(txn)

        assert isinstance(result, Rejected)
        assert result.rule == "polarity"
        assert result.transaction_id == txn.id

    @pytest.mark.parametrize(
        "overrides, rule",
        [
            ({"description": "Transfer to pot"}, "excluded_pattern"),
            ({"scheme": "p2p_payment"}, "excluded_scheme"),
            ({"with_merchant": False}, "merchant_present"),
            ({"merchant_name": "Jane Smith"}, "not_a_person"),
            ({"address": MANCHESTER_ADDRESS}, "home_locality"),
            ({"created": "2026-02-15T12:00:00.000Z"}, "workday"),
            ({"category": "transport"}, "category_allowed"),
        ],
    )
    def test_each_rule_can_reject(self, overrides, rule):
        result = self.classifier.classify(make_transaction(**overrides))
        assert isinstance(result, Rejected)
        assert result.rule == rule

    def test_classification_is_deterministic(self):
        txn = make_transaction()
        assert self.classifier.classify(txn) == self.classifier.classify(txn)

    def test_filter_and_convert_keeps_only_expenses(self):
        transactions = [
            make_transaction(txn_id="tx_1"),
            make_transaction(txn_id="tx_2", amount=2500),
            make_transaction(txn_id="tx_3", category="bills"),
            make_transaction(txn_id="tx_4", merchant_name="Pret A Manger", category="coffee", amount=-320),
        ]
        expenses = self.classifier.filter_and_convert(transactions)

        assert [e.merchant for e in expenses] == ["Sample Sandwich Bar", "Pret A Manger"]

    def test_from_config(self):
        classifier = ExpenseClassifier.from_config(ClassifierConfig(categories=["transport"]))
        assert isinstance(classifier.classify(make_transaction(category="transport")), Expense)
        assert isinstance(classifier.classify(make_transaction(category="eating_out")), Rejected)


@pytest.mark.classifier
class TestConversion:
    """Test the normalized Expense fields."""

    def setup_method(self):
        self.classifier = ExpenseClassifier()

    def test_meal_fields(self):
        expense = self.classifier.to_expense(make_transaction(amount=-2095))

        assert expense.amount == Money.from_pence(2095)
        assert expense.amount.to_major() == 20.95
        assert expense.date.to_iso_string() == "2026-02-11"
        assert expense.weekday == "WED"
        assert expense.merchant == "Sample Sandwich Bar"
        assert expense.category == "Meals & Entertainment"
        assert expense.expense_type == "Meals"
        assert expense.purpose == "Recent transaction from Monzo"
        assert expense.receipt_attached == "No"
        assert expense.notes == "Monzo - eating_out"
        assert expense.location == "1 Example Street, London EC2A 4NE"

    def test_non_meal_fields(self):
        expense = self.classifier.to_expense(make_transaction(category="groceries"))
        assert expense.category == "General"
        assert expense.expense_type == "Other"
        assert expense.notes == "Monzo - groceries"

    def test_date_in_home_time_zone(self):
        expense = self.classifier.to_expense(make_transaction(created="2026-06-08T23:30:00.000Z"))
        assert expense.date.to_iso_string() == "2026-06-09"
        assert expense.weekday == "TUE"

    def test_merchant_falls_back_to_description(self):
        expense = self.classifier.to_expense(make_transaction(merchant_name=None, description="SQ *MARKET STALL"))
        assert expense.merchant == "SQ *MARKET STALL"

    def test_location_fallbacks(self):
        city_only = make_transaction(address={"city": "London", "short_formatted": ""})
        no_address = make_transaction(address={})

        assert self.classifier.to_expense(city_only).location == "London"
        assert self.classifier.to_expense(no_address).location == "London"

    def test_key_matches_baseline_convention(self):
        expense = self.classifier.to_expense(make_transaction(amount=-920))
        assert expense.key == ("2026-02-11", "Sample Sandwich Bar", 920)


@pytest.mark.classifier
class TestExplain:
    def test_reports_every_rule(self):
        txn = make_transaction(amount=500, category="transport")
        outcomes = ExpenseClassifier().explain(txn)

        assert len(outcomes) == 8
        failed = {o.rule for o in outcomes if not o.passed}
        assert failed == {"polarity", "category_allowed"}
        assert outcomes[0].to_dict()["rule"] == "polarity"
