"""Domain entities."""

from .cart import Cart, CartLineItem
from .inventory import InventoryItem, InventoryLevel, InventoryReservation
from .order import Fulfillment, Order, OrderLineItem
from .payment import Payment, Refund
from .product import ProductVariant
from .returns import Return, ReturnItem

__all__ = [
    "Cart",
    "CartLineItem",
    "Fulfillment",
    "InventoryItem",
    "InventoryLevel",
    "InventoryReservation",
    "Order",
    "OrderLineItem",
    "Payment",
    "ProductVariant",
    "Refund",
    "Return",
    "ReturnItem",
]
