"""
In-memory Return repository.
"""
from copy import deepcopy
from typing import Dict, Iterable, List, Optional
import logging

from core.domain.entities.returns import Return
from core.domain.repositories.return_repository import ReturnRepository


logger = logging.getLogger(__name__)


class InMemoryReturnRepository(ReturnRepository):

    def __init__(self, returns: Iterable[Return] = ()):
        self._storage: Dict[str, Return] = {r.id: deepcopy(r) for r in returns}

    async def find_by_id(self, return_id: str) -> Optional[Return]:
        return_ = self._storage.get(return_id)
        return deepcopy(return_) if return_ else None

    async def find_by_order_id(self, order_id: str) -> List[Return]:
        return [deepcopy(r) for r in self._storage.values() if r.order_id == order_id]

    async def save(self, return_: Return) -> Return:
        self._storage[return_.id] = deepcopy(return_)
        logger.info(f"Return saved: {return_.id} (status: {return_.status.value})")
        return return_
