"""
Money Value Type

All amounts in the ledger are exact decimals tagged with a currency code.

DESIGN DECISION: Decimal, never float. Balances are credited and debited
many times over a user's life and binary floating point drifts.
Floats passed to the constructors go through str() first so that
Money.of(0.1, "USD") is exactly 0.1.

DESIGN DECISION: Mixing currencies is an error. There is no conversion
logic in this system, so adding USD to EUR can only be a caller bug.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from arus.errors import LedgerError


Number = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


class CurrencyMismatchError(LedgerError, ValueError):
    """Arithmetic attempted between two different currencies."""

    code = "currency_mismatch"

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Currency mismatch: {left} vs {right}")

    def to_details(self) -> dict:
        return {"left": self.left, "right": self.right}


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


class Money(BaseModel):
    """
    An exact amount in a single currency.

    Immutable: every operation returns a new Money.
    The currency of a result is the left operand's currency.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ...,
        description="Exact amount, may be negative"
    )
    currency: str = Field(
        ...,
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def of(cls, value: Number, currency: str) -> "Money":
        return cls(amount=to_decimal(value), currency=currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(amount=Decimal("0"), currency=currency)

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        """Subtract without clamping; the result may be negative."""
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def multiply(self, factor: Number) -> "Money":
        """Scale by a plain number (used for percentage allocations)."""
        return Money(amount=self.amount * to_decimal(factor), currency=self.currency)

    def negate(self) -> "Money":
        return Money(amount=-self.amount, currency=self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def quantize(self) -> "Money":
        """Round to cents. For display only, ledger math is never rounded."""
        return Money(
            amount=self.amount.quantize(CENTS, rounding=ROUND_HALF_EVEN),
            currency=self.currency,
        )

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.quantize().amount} {self.currency}"


def sum_money(values, currency: str) -> Money:
    """Sum an iterable of Money, starting from zero in the given currency."""
    total = Money.zero(currency)
    for value in values:
        total = total.add(value)
    return total
