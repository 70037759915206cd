"""Domain value objects - pure Python immutable types."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "CLP", "ISK", "UGX"})


def to_amount(value: Union[Decimal, int, str]) -> Decimal:
    """
    Normalize a monetary amount to a two-place Decimal.

    CRITICAL: Always use Decimal, never float!
    """
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary value with currency.

    Used at the boundary to payment providers, which need both the amount
    and its currency (and often the amount in minor units).
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_amount(self.amount))
        if not isinstance(self.currency, str) or len(self.currency) != 3:
            raise ValueError(
                f"Currency must be 3-letter ISO code, got: {self.currency}"
            )
        object.__setattr__(self, 'currency', self.currency.upper())

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __add__(self, other: 'Money') -> 'Money':
        """Add two Money objects (must have same currency)."""
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two Money objects (must have same currency)."""
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def _check_currency(self, other: 'Money') -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )

    def minor_units(self) -> int:
        """Amount in the smallest currency unit (cents for USD)."""
        if self.currency in ZERO_DECIMAL_CURRENCIES:
            return int(self.amount.to_integral_value(rounding=ROUND_HALF_UP))
        return int((self.amount * 100).to_integral_value(rounding=ROUND_HALF_UP))

    def is_positive(self) -> bool:
        return self.amount > 0
