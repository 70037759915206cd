"""Repository interfaces."""

from .cart_repository import CartRepository, ProductVariantRepository
from .inventory_repository import InventoryRepository
from .order_repository import OrderRepository
from .payment_repository import PaymentRepository, RefundRepository
from .return_repository import ReturnRepository

__all__ = [
    "CartRepository",
    "InventoryRepository",
    "OrderRepository",
    "PaymentRepository",
    "ProductVariantRepository",
    "RefundRepository",
    "ReturnRepository",
]
