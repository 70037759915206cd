"""Domain layer - pure domain models and interfaces."""

from .entities import Cart, CartLineItem, Order, Payment, ProductVariant, Refund, Return
from .exceptions import (
    ConflictError,
    DomainError,
    ErrorKind,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from .value_objects import Money

__all__ = [
    "Cart",
    "CartLineItem",
    "ConflictError",
    "DomainError",
    "ErrorKind",
    "InfrastructureError",
    "Money",
    "NotFoundError",
    "Order",
    "Payment",
    "ProductVariant",
    "Refund",
    "Return",
    "ValidationError",
]
