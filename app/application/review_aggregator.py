import logging

from app.domain.models import Review
from app.domain.schemas import Identity, RatingOut, ReviewCreate
from app.interfaces.IRestaurantRepository import IRestaurantRepository

logger = logging.getLogger(__name__)


class ReviewAggregator:
    """Restaurant rating is the mean of its reviews, recomputed from the review rows every time."""

    def __init__(self, restaurant_repo: IRestaurantRepository):
        self.restaurant_repo = restaurant_repo

    def add_review(self, identity: Identity, restaurant_id: int, payload: ReviewCreate) -> RatingOut:
        restaurant = self.restaurant_repo.get_restaurant(restaurant_id)
        self.restaurant_repo.add_review(
            Review(
                restaurant_id=restaurant.id,
                user_id=identity.user_id,
                rating=payload.rating,
                comment=payload.comment,
            )
        )
        rating = self.rating(restaurant.id)
        logger.info(f"Review added to restaurant {restaurant.id}: rating now {rating.rating} ({rating.review_count})")
        return rating

    def rating(self, restaurant_id: int) -> RatingOut:
        mean, count = self.restaurant_repo.rating_stats(restaurant_id)
        return RatingOut(restaurant_id=restaurant_id, rating=round(mean, 2), review_count=count)
