import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.application.order_service import OrderService
from app.application.review_aggregator import ReviewAggregator
from app.domain import models  # noqa: F401  registers tables on Base.metadata
from app.domain.errors import OrderingError
from app.infrastructure.database import Base, make_engine, make_session_factory
from app.infrastructure.event_log import RedisEventLog
from app.infrastructure.notification_service import CompositeDispatcher, TwilioNotificationDispatcher
from app.infrastructure.repositories.order_repository import SqlOrderRepository
from app.infrastructure.repositories.restaurant_repository import SqlRestaurantRepository
from app.interfaces import order_routes, restaurant_routes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
def init_db(engine: Engine, retries: int = settings.DB_CONNECT_RETRIES, wait_seconds: int = settings.DB_CONNECT_WAIT_SECONDS) -> None:
    for attempt in range(retries):
        try:
            logger.info(f"Attempting DB connection ({attempt + 1}/{retries})...")
            Base.metadata.create_all(bind=engine)
            logger.info("DB connected and tables created.")
            return
        except OperationalError:
            logger.warning(f"DB not ready yet. Waiting {wait_seconds}s...")
            time.sleep(wait_seconds)
    raise RuntimeError(f"Could not connect to DB after {retries} attempts")


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def wire(app: FastAPI, session_factory, event_log: RedisEventLog, dispatcher=None) -> None:
    """Builds the collaborators once and hands them to the routers through app.state."""
    order_repo = SqlOrderRepository(session_factory)
    restaurant_repo = SqlRestaurantRepository(session_factory)
    dispatcher = dispatcher or CompositeDispatcher([event_log, TwilioNotificationDispatcher()])

    app.state.event_log = event_log
    app.state.restaurant_repo = restaurant_repo
    app.state.order_service = OrderService(order_repo, restaurant_repo, dispatcher)
    app.state.review_aggregator = ReviewAggregator(restaurant_repo)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not hasattr(app.state, "order_service"):
        engine = make_engine(settings.DATABASE_URL)
        init_db(engine)
        wire(app, make_session_factory(engine), RedisEventLog(settings.REDIS_URL))
    yield


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)


@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError):
    if exc.status_code >= 409:
        logger.info(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include Routers
app.include_router(order_routes.router)
app.include_router(restaurant_routes.router)


@app.get("/")
def health_check():
    status = "active" if hasattr(app.state, "order_service") else "degraded"
    return {"status": status, "system": settings.PROJECT_NAME}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
