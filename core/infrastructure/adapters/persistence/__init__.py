"""In-memory persistence adapters."""

from .in_memory_cart_repository import InMemoryCartRepository, InMemoryProductVariantRepository
from .in_memory_inventory_repository import InMemoryInventoryRepository
from .in_memory_order_repository import InMemoryOrderRepository
from .in_memory_payment_repository import InMemoryPaymentRepository, InMemoryRefundRepository
from .in_memory_return_repository import InMemoryReturnRepository

__all__ = [
    "InMemoryCartRepository",
    "InMemoryInventoryRepository",
    "InMemoryOrderRepository",
    "InMemoryPaymentRepository",
    "InMemoryProductVariantRepository",
    "InMemoryRefundRepository",
    "InMemoryReturnRepository",
]
