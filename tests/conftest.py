from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.application.order_service import OrderService
from app.application.review_aggregator import ReviewAggregator
from app.domain import models  # noqa: F401
from app.domain.enums import PaymentMethod, PickupType, Role
from app.domain.schemas import Identity, OrderCreate, OrderItemIn
from app.infrastructure.database import Base, make_engine, make_session_factory
from app.infrastructure.event_log import RedisEventLog
from app.infrastructure.notification_service import CompositeDispatcher
from app.infrastructure.repositories.order_repository import SqlOrderRepository
from app.infrastructure.repositories.restaurant_repository import SqlRestaurantRepository

NOW = datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)
ALMATY = (43.2389, 76.8897)

CUSTOMER = Identity(user_id="user-1", role=Role.CUSTOMER)
OTHER_CUSTOMER = Identity(user_id="user-2", role=Role.CUSTOMER)
OWNER = Identity(user_id="owner-1", role=Role.RESTAURANT_OWNER)
ADMIN = Identity(user_id="admin-1", role=Role.ADMIN)


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


class SequenceRng:
    """Stands in for random.Random, handing out a fixed sequence of suffixes."""

    def __init__(self, values):
        self.values = list(values)

    def randrange(self, stop):
        return self.values.pop(0)


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def order_repo(session_factory):
    return SqlOrderRepository(session_factory)


@pytest.fixture
def restaurant_repo(session_factory):
    return SqlRestaurantRepository(session_factory)


@pytest.fixture
def restaurant(restaurant_repo):
    return restaurant_repo.create_restaurant(
        models.Restaurant(
            owner_id=OWNER.user_id,
            name="Dastarkhan",
            latitude=ALMATY[0],
            longitude=ALMATY[1],
            average_preparation_time=25,
            max_delivery_distance=5000,
            is_active=True,
        )
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def service(order_repo, restaurant_repo, dispatcher):
    return OrderService(order_repo, restaurant_repo, dispatcher, clock=lambda: NOW)


def make_order_payload(restaurant_id, items=None, **overrides):
    if items is None:
        items = [OrderItemIn(menu_item_id="m-1", quantity=2, unit_price=500)]
    data = dict(
        restaurant_id=restaurant_id,
        items=items,
        payment_method=PaymentMethod.CARD,
        pickup_type=PickupType.TAKEAWAY,
        pickup_time=NOW + timedelta(hours=1),
    )
    data.update(overrides)
    return OrderCreate(**data)


@pytest.fixture
def pending_order(service, restaurant):
    return service.create_order(CUSTOMER, make_order_payload(restaurant.id))


# --- HTTP ---

def headers(identity):
    return {"X-User-Id": identity.user_id, "X-User-Role": identity.role.value}


@pytest.fixture
def client(session_factory, restaurant_repo, service):
    from app.main import app

    event_log = RedisEventLog(None)
    service.dispatcher = CompositeDispatcher([event_log])
    app.state.event_log = event_log
    app.state.restaurant_repo = restaurant_repo
    app.state.order_service = service
    app.state.review_aggregator = ReviewAggregator(restaurant_repo)
    # No context manager: the lifespan would wire the real database
    return TestClient(app)
