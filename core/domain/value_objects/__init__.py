"""Domain value objects."""

from .money import CENT, ZERO, Money, to_amount

__all__ = ["CENT", "ZERO", "Money", "to_amount"]
