import logging
import random
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import pytz

from app.core.config import settings
from app.domain import geo, lifecycle, pricing
from app.domain.enums import EventKind, OrderStatus, PaymentStatus
from app.domain.errors import (
    EmptyOrder,
    InvalidPickupTime,
    NotFound,
    OrderNumberCollision,
    OrderNumberExhausted,
    OutOfDeliveryRange,
)
from app.domain.models import Order
from app.domain.schemas import (
    Identity,
    LifecycleEvent,
    OrderCreate,
    OrderFilter,
    Page,
    Quote,
    QuoteRequest,
)
from app.interfaces.INotificationDispatcher import INotificationDispatcher
from app.interfaces.IOrderRepository import IOrderRepository
from app.interfaces.IRestaurantRepository import IRestaurantRepository

logger = logging.getLogger(__name__)

# --- CONFIG ---
TIMEZONE = pytz.timezone(settings.TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderService:
    """
    Applies the order lifecycle over injected collaborators.

    Every mutation is a read / validate / compare-and-swap cycle against the
    repository; the service keeps no state of its own between calls.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        restaurant_repo: IRestaurantRepository,
        dispatcher: INotificationDispatcher,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
        max_order_number_attempts: int = settings.ORDER_NUMBER_MAX_ATTEMPTS,
    ):
        self.order_repo = order_repo
        self.restaurant_repo = restaurant_repo
        self.dispatcher = dispatcher
        self.clock = clock
        self.rng = rng or random.Random()
        self.max_order_number_attempts = max_order_number_attempts

    # --- PRICING ---

    def quote(self, payload: QuoteRequest) -> Quote:
        restaurant = self._active_restaurant(payload.restaurant_id)
        distance = self._distance_to(restaurant, payload.customer_location)
        breakdown = pricing.quote(
            payload.items,
            distance_meters=distance,
            discount_percentage=payload.discount_percentage,
            tip_percentage=payload.tip_percentage,
        )
        return Quote(
            **breakdown.model_dump(),
            distance_meters=distance,
            estimated_travel_minutes=geo.estimated_travel_minutes(distance),
        )

    # --- CREATE ---

    def create_order(self, identity: Identity, payload: OrderCreate) -> Order:
        lifecycle.authorize_create(identity)
        if not payload.items:
            raise EmptyOrder("Order must contain at least one item")

        now = self.clock()
        if _as_utc(payload.pickup_time) <= now:
            raise InvalidPickupTime("Pickup time must be in the future")

        restaurant = self._active_restaurant(payload.restaurant_id)
        distance = self._distance_to(restaurant, payload.customer_location)
        breakdown = pricing.quote(
            payload.items,
            distance_meters=distance,
            discount_percentage=payload.discount_percentage,
            tip_percentage=payload.tip_percentage,
        )

        order = self._insert_with_unique_number(
            now,
            lambda number: Order(
                order_number=number,
                user_id=identity.user_id,
                restaurant_id=restaurant.id,
                items=[item.model_dump() for item in payload.items],
                price_breakdown=breakdown.model_dump(),
                total_amount=breakdown.total,
                distance_meters=distance,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_method=payload.payment_method.value,
                pickup_type=payload.pickup_type.value,
                pickup_time=_as_utc(payload.pickup_time),
                estimated_preparation_time=restaurant.average_preparation_time,
                notes=payload.notes,
                version=1,
                created_at=now,
                updated_at=now,
            ),
        )
        logger.info(f"Order {order.order_number} created by {identity.user_id}, total {order.total_amount}")
        self._emit(order, EventKind.ORDER_CONFIRMATION, None, order.status)
        return order

    def _insert_with_unique_number(self, now: datetime, build: Callable[[str], Order]) -> Order:
        local_now = now.astimezone(TIMEZONE)
        for attempt in range(1, self.max_order_number_attempts + 1):
            number = lifecycle.generate_order_number(local_now, self.rng)
            if self.order_repo.order_number_exists(number):
                logger.info(f"Order number {number} taken (attempt {attempt}/{self.max_order_number_attempts})")
                continue
            try:
                return self.order_repo.insert_order(build(number))
            except OrderNumberCollision:
                # Lost the race for this number between the check and the insert
                logger.info(f"Order number {number} collided on insert (attempt {attempt}/{self.max_order_number_attempts})")
        raise OrderNumberExhausted(
            f"Could not allocate a unique order number after {self.max_order_number_attempts} attempts"
        )

    # --- READ ---

    def get_order(self, identity: Identity, order_id: int) -> Order:
        order = self.order_repo.load_order(order_id)
        lifecycle.authorize_view(identity, order)
        return order

    def list_orders(
        self,
        identity: Identity,
        filters: Optional[OrderFilter] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        page: Optional[Page] = None,
    ) -> List[Order]:
        scoped = lifecycle.scope_filter(identity, filters)
        return self.order_repo.find_orders(scoped, sort=sort, page=page or Page())

    # --- STATUS TRANSITIONS ---

    def confirm(self, identity: Identity, order_id: int) -> Order:
        return self._transition(identity, order_id, "confirm")

    def advance(self, identity: Identity, order_id: int) -> Order:
        return self._transition(identity, order_id, "advance")

    def cancel(self, identity: Identity, order_id: int) -> Order:
        return self._transition(identity, order_id, "cancel")

    def _transition(self, identity: Identity, order_id: int, action: str) -> Order:
        order = self.order_repo.load_order(order_id)
        transition = lifecycle.resolve(action, identity, order)

        previous = order.status
        expected_version = order.version
        now = self.clock()
        order.status = transition.target.value
        order.updated_at = now
        if transition.target == OrderStatus.COMPLETED:
            order.actual_pickup_time = now

        saved = self.order_repo.save_order(order, expected_version)
        logger.info(
            f"Order {saved.order_number}: {previous} -> {saved.status} "
            f"by {identity.user_id} ({identity.role.value}), v{saved.version}"
        )
        self._emit(saved, EventKind.ORDER_STATUS, previous, saved.status)
        return saved

    # --- PAYMENT ---

    def update_payment_status(self, identity: Identity, order_id: int, target: PaymentStatus) -> Order:
        order = self.order_repo.load_order(order_id)
        previous = lifecycle.resolve_payment(identity, order, target)

        expected_version = order.version
        order.payment_status = target.value
        order.updated_at = self.clock()

        saved = self.order_repo.save_order(order, expected_version)
        logger.info(f"Order {saved.order_number}: payment {previous.value} -> {target.value}, v{saved.version}")
        self._emit(saved, EventKind.PAYMENT_STATUS, previous.value, target.value)
        return saved

    # --- HELPERS ---

    def _active_restaurant(self, restaurant_id: int):
        restaurant = self.restaurant_repo.get_restaurant(restaurant_id)
        if not restaurant.is_active:
            raise NotFound(f"Restaurant {restaurant_id} is not accepting orders")
        return restaurant

    def _distance_to(self, restaurant, location) -> int:
        if location is None:
            return 0
        distance = geo.distance(restaurant, location)
        if distance > restaurant.max_delivery_distance:
            raise OutOfDeliveryRange(
                f"Location is {distance} m away, restaurant serves up to {restaurant.max_delivery_distance} m"
            )
        return distance

    def _emit(self, order: Order, kind: EventKind, previous: Optional[str], new: str) -> None:
        event = LifecycleEvent(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            kind=kind,
            previous_status=previous,
            new_status=new,
            timestamp=self.clock(),
            total_amount=order.total_amount,
        )
        try:
            self.dispatcher.publish(event)
        except Exception:
            # The mutation is already committed; a lost notification must not undo it
            logger.exception(f"Failed to publish {kind.value} event for order {order.order_number}")
