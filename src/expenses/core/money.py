#!/usr/bin/env python3
"""
Money Primitive Type

Immutable currency value wrapper that uses integer pence internally.
Prevents floating-point errors when expenses from several sources are totalled.
"""

from dataclasses import dataclass
from typing import Union

from .currency import (
    DEFAULT_CURRENCY,
    format_pence,
    major_to_pence,
    parse_pounds_to_pence,
    pence_to_major,
)


@dataclass(frozen=True)
class Money:
    """
    Immutable money value in pence.

    Examples:
        >>> lunch = Money.from_minor_units(-850)  # Monzo debit
        >>> str(lunch)
        '£-8.50'
        >>> lunch.abs().to_major()
        8.5

        >>> Money.from_major(9.2).to_pence()
        920
    """

    pence: int
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def from_pence(cls, pence: int, currency: str = DEFAULT_CURRENCY) -> "Money":
        """Create Money from pence."""
        return cls(pence=pence, currency=currency)

    @classmethod
    def from_minor_units(cls, minor_units: int, currency: str = DEFAULT_CURRENCY) -> "Money":
        """
        Create Money from a Monzo minor-unit amount.

        Preserves sign: negative amounts (debits) stay negative.
        """
        return cls(pence=int(minor_units), currency=currency)

    @classmethod
    def from_major(cls, amount: Union[int, float, str], currency: str = DEFAULT_CURRENCY) -> "Money":
        """
        Create Money from a major-unit number such as 8.5 or "8.50".

        Raises:
            ValueError: If the amount cannot be parsed
        """
        if isinstance(amount, str):
            return cls(pence=parse_pounds_to_pence(amount), currency=currency)
        return cls(pence=major_to_pence(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(pence=0, currency=currency)

    def to_pence(self) -> int:
        """Get value in pence."""
        return self.pence

    def to_major(self) -> float:
        """Get value as a 2-decimal major-unit number."""
        return pence_to_major(self.pence)

    def abs(self) -> "Money":
        """Return absolute value of Money."""
        return Money(pence=abs(self.pence), currency=self.currency)

    def is_positive(self) -> bool:
        return self.pence > 0

    def __add__(self, other: "Money") -> "Money":
        """Add two Money objects."""
        return Money(pence=self.pence + other.pence, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        """Subtract two Money objects."""
        return Money(pence=self.pence - other.pence, currency=self.currency)

    def __lt__(self, other: "Money") -> bool:
        return self.pence < other.pence

    def __le__(self, other: "Money") -> bool:
        return self.pence <= other.pence

    def __gt__(self, other: "Money") -> bool:
        return self.pence > other.pence

    def __ge__(self, other: "Money") -> bool:
        return self.pence >= other.pence

    def __str__(self) -> str:
        """Format with currency symbol."""
        return format_pence(self.pence, self.currency)

    def __repr__(self) -> str:
        return f"Money(pence={self.pence}, currency={self.currency!r})"
