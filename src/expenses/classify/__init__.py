"""
Expense Classification Package

Turns raw Monzo transactions into work expenses through an ordered chain of
named, independently testable rules.
"""

from .classifier import ExpenseClassifier, Rejected, RuleOutcome
from .rules import DEFAULT_RULES, Rule, RuleSettings

__all__ = ["DEFAULT_RULES", "ExpenseClassifier", "Rejected", "Rule", "RuleOutcome", "RuleSettings"]
