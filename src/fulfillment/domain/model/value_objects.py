"""Money and quantity types used by orders, deliveries and the stock ledger.

Both are frozen dataclasses that validate on construction, so a negative
price or a zero quantity cannot reach a repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from fulfillment.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "INR"

# Razorpay and most gateways bill in paise / cents.
MINOR_UNITS_PER_MAJOR = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Money:
    """A non-negative Decimal amount tagged with its currency.

    Signed results (cash variance) are plain Decimals; see ``variance_from``.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if not self.amount.is_finite():
            raise ValidationError(f"Money amount must be finite, got {self.amount}")
        if self.amount.is_signed() and self.amount != 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    @staticmethod
    def of(amount: str | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Build from user or wire input; floats should arrive as strings."""
        try:
            parsed = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc
        return Money(parsed, currency)

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(Decimal("0"), currency)

    def __add__(self, other: Money) -> Money:
        _same_currency(self, other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise TypeError(f"Money can only be scaled by an int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def variance_from(self, expected: Money) -> Decimal:
        """``self - expected``; negative when less was collected than expected."""
        _same_currency(self, expected)
        return self.amount - expected.amount

    def to_minor_units(self) -> int:
        return int((self.amount * MINOR_UNITS_PER_MAJOR).to_integral_value())

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


def _same_currency(a: Money, b: Money) -> None:
    if a.currency != b.currency:
        raise ValidationError(f"Cannot combine {a.currency} with {b.currency}")


@dataclass(frozen=True)
class Quantity:
    """Units of one product on an order line; always a positive int."""

    value: int

    def __post_init__(self) -> None:
        # bool is an int subclass; True must not pass as one unit.
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value < 1:
            raise ValidationError(f"Quantity must be positive, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)
