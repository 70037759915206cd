"""Repository interface for returns."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.returns import Return


class ReturnRepository(ABC):

    @abstractmethod
    async def find_by_id(self, return_id: str) -> Optional[Return]:
        pass

    @abstractmethod
    async def find_by_order_id(self, order_id: str) -> List[Return]:
        pass

    @abstractmethod
    async def save(self, return_: Return) -> Return:
        pass
