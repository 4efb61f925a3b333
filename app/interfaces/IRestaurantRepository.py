from abc import ABC, abstractmethod
from typing import List, Tuple

from app.domain.models import Restaurant, Review

class IRestaurantRepository(ABC):
    @abstractmethod
    def create_restaurant(self, restaurant: Restaurant) -> Restaurant:
        pass

    @abstractmethod
    def get_restaurant(self, restaurant_id: int) -> Restaurant:
        """Raises NotFound."""
        pass

    @abstractmethod
    def list_active_restaurants(self) -> List[Restaurant]:
        pass

    @abstractmethod
    def add_review(self, review: Review) -> Review:
        pass

    @abstractmethod
    def rating_stats(self, restaurant_id: int) -> Tuple[float, int]:
        """Mean rating and review count, reduced over the stored reviews."""
        pass
