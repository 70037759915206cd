"""
In-memory Payment and Refund repositories.
"""
from copy import deepcopy
from typing import Dict, Iterable, List, Optional
import logging

from core.domain.entities.payment import Payment, Refund
from core.domain.repositories.payment_repository import PaymentRepository, RefundRepository


logger = logging.getLogger(__name__)


class InMemoryPaymentRepository(PaymentRepository):

    def __init__(self, payments: Iterable[Payment] = ()):
        self._storage: Dict[str, Payment] = {p.id: deepcopy(p) for p in payments}

    async def find_by_id(self, payment_id: str) -> Optional[Payment]:
        payment = self._storage.get(payment_id)
        return deepcopy(payment) if payment else None

    async def find_by_order_id(self, order_id: str) -> List[Payment]:
        return [deepcopy(p) for p in self._storage.values() if p.order_id == order_id]

    async def save(self, payment: Payment) -> Payment:
        self._storage[payment.id] = deepcopy(payment)
        logger.info(f"Payment saved: {payment.id} (status: {payment.status.value})")
        return payment


class InMemoryRefundRepository(RefundRepository):

    def __init__(self, refunds: Iterable[Refund] = ()):
        self._storage: Dict[str, Refund] = {r.id: deepcopy(r) for r in refunds}

    async def find_by_id(self, refund_id: str) -> Optional[Refund]:
        refund = self._storage.get(refund_id)
        return deepcopy(refund) if refund else None

    async def find_by_payment_id(self, payment_id: str) -> List[Refund]:
        return [deepcopy(r) for r in self._storage.values() if r.payment_id == payment_id]

    async def save(self, refund: Refund) -> Refund:
        self._storage[refund.id] = deepcopy(refund)
        logger.info(f"Refund saved: {refund.id} ({refund.amount} {refund.currency_code})")
        return refund

    async def delete(self, refund_id: str) -> None:
        if self._storage.pop(refund_id, None) is not None:
            logger.info(f"Refund deleted: {refund_id}")
