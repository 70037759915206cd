"""Repository interfaces for payments and refunds."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.payment import Payment, Refund


class PaymentRepository(ABC):

    @abstractmethod
    async def find_by_id(self, payment_id: str) -> Optional[Payment]:
        pass

    @abstractmethod
    async def find_by_order_id(self, order_id: str) -> List[Payment]:
        """All payments of an order, oldest first."""
        pass

    @abstractmethod
    async def save(self, payment: Payment) -> Payment:
        pass


class RefundRepository(ABC):

    @abstractmethod
    async def find_by_id(self, refund_id: str) -> Optional[Refund]:
        pass

    @abstractmethod
    async def find_by_payment_id(self, payment_id: str) -> List[Refund]:
        pass

    @abstractmethod
    async def save(self, refund: Refund) -> Refund:
        pass

    @abstractmethod
    async def delete(self, refund_id: str) -> None:
        """Remove a refund record. Deleting a missing refund is a no-op."""
        pass
