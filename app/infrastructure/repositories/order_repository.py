import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import asc, desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.domain.errors import ConcurrentModification, NotFound, OrderNumberCollision
from app.domain.models import Order
from app.domain.schemas import OrderFilter, Page
from app.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

# Fields a lifecycle transition may touch; everything else is frozen at creation
MUTABLE_FIELDS = ("status", "payment_status", "actual_pickup_time", "updated_at")

SORTABLE_FIELDS = {"created_at", "updated_at", "pickup_time", "total_amount", "status"}
DEFAULT_SORT = (("created_at", -1),)


class SqlOrderRepository(IOrderRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def insert_order(self, order: Order) -> Order:
        session = self.session_factory()
        try:
            session.add(order)
            session.commit()
            session.refresh(order)
            return order
        except IntegrityError as e:
            session.rollback()
            # Only the order-number index can collide on insert
            logger.warning(f"Order number {order.order_number} already taken: {e.orig}")
            raise OrderNumberCollision(f"Order number {order.order_number} already exists")
        except SQLAlchemyError:
            session.rollback()
            logger.exception("DB error while inserting order")
            raise
        finally:
            session.close()

    def load_order(self, order_id: int) -> Order:
        session = self.session_factory()
        try:
            order = session.get(Order, order_id)
            if order is None:
                raise NotFound(f"Order {order_id} not found")
            return order
        finally:
            session.close()

    def save_order(self, order: Order, expected_version: int) -> Order:
        values = {field: getattr(order, field) for field in MUTABLE_FIELDS}
        stmt = (
            update(Order)
            .where(Order.id == order.id, Order.version == expected_version)
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        session = self.session_factory()
        try:
            result = session.execute(stmt)
            if result.rowcount == 0:
                session.rollback()
                if session.get(Order, order.id) is None:
                    raise NotFound(f"Order {order.id} not found")
                raise ConcurrentModification(
                    f"Order {order.id} was modified concurrently (expected version {expected_version})"
                )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception(f"DB error while saving order {order.id}")
            raise
        finally:
            session.close()

        order.version = expected_version + 1
        return order

    def find_orders(
        self,
        filters: OrderFilter,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        page: Optional[Page] = None,
    ) -> List[Order]:
        """
        Retrieves orders matching ``filters``.
        ``sort`` is a list of (field, direction) pairs, direction 1 or -1;
        newest first when omitted.
        """
        stmt = select(Order)
        if filters.user_id is not None:
            stmt = stmt.where(Order.user_id == filters.user_id)
        if filters.restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == filters.restaurant_id)
        if filters.status is not None:
            stmt = stmt.where(Order.status == filters.status.value)
        if filters.start_date is not None:
            stmt = stmt.where(Order.created_at >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Order.created_at <= filters.end_date)

        for field, direction in (sort or DEFAULT_SORT):
            if field not in SORTABLE_FIELDS:
                raise ValueError(f"Cannot sort orders by '{field}'")
            column = getattr(Order, field)
            stmt = stmt.order_by(desc(column) if direction < 0 else asc(column))
        stmt = stmt.order_by(desc(Order.id))

        if page is not None:
            stmt = stmt.offset(page.offset).limit(page.limit)

        session = self.session_factory()
        try:
            return list(session.scalars(stmt).all())
        finally:
            session.close()

    def order_number_exists(self, order_number: str) -> bool:
        session = self.session_factory()
        try:
            stmt = select(Order.id).where(Order.order_number == order_number)
            return session.scalars(stmt).first() is not None
        finally:
            session.close()
