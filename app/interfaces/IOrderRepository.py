from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from app.domain.models import Order
from app.domain.schemas import OrderFilter, Page

class IOrderRepository(ABC):
    @abstractmethod
    def insert_order(self, order: Order) -> Order:
        """Persist a new order. Raises OrderNumberCollision if its number is taken."""
        pass

    @abstractmethod
    def load_order(self, order_id: int) -> Order:
        """Raises NotFound."""
        pass

    @abstractmethod
    def save_order(self, order: Order, expected_version: int) -> Order:
        """Write status fields only if the stored version still equals ``expected_version``.
        Raises ConcurrentModification otherwise."""
        pass

    @abstractmethod
    def find_orders(
        self,
        filters: OrderFilter,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        page: Optional[Page] = None,
    ) -> List[Order]:
        pass

    @abstractmethod
    def order_number_exists(self, order_number: str) -> bool:
        pass
