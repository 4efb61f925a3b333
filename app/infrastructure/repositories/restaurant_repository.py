import logging
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.domain.errors import NotFound
from app.domain.models import Restaurant, Review
from app.interfaces.IRestaurantRepository import IRestaurantRepository

logger = logging.getLogger(__name__)


class SqlRestaurantRepository(IRestaurantRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_restaurant(self, restaurant: Restaurant) -> Restaurant:
        return self._add(restaurant)

    def get_restaurant(self, restaurant_id: int) -> Restaurant:
        session = self.session_factory()
        try:
            restaurant = session.get(Restaurant, restaurant_id)
            if restaurant is None:
                raise NotFound(f"Restaurant {restaurant_id} not found")
            return restaurant
        finally:
            session.close()

    def list_active_restaurants(self) -> List[Restaurant]:
        session = self.session_factory()
        try:
            stmt = select(Restaurant).where(Restaurant.is_active.is_(True)).order_by(Restaurant.id)
            return list(session.scalars(stmt).all())
        finally:
            session.close()

    def add_review(self, review: Review) -> Review:
        return self._add(review)

    def rating_stats(self, restaurant_id: int) -> Tuple[float, int]:
        session = self.session_factory()
        try:
            stmt = select(func.avg(Review.rating), func.count(Review.id)).where(
                Review.restaurant_id == restaurant_id
            )
            mean, count = session.execute(stmt).one()
            return (float(mean) if mean is not None else 0.0), count
        finally:
            session.close()

    def _add(self, row):
        session = self.session_factory()
        try:
            session.add(row)
            session.commit()
            session.refresh(row)
            return row
        except SQLAlchemyError:
            session.rollback()
            logger.exception(f"DB error while inserting into {row.__tablename__}")
            raise
        finally:
            session.close()
