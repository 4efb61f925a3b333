from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.sql import func
from app.infrastructure.database import Base

class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    average_preparation_time = Column(Integer, nullable=False, default=20)  # minutes
    max_delivery_distance = Column(Integer, nullable=False, default=5000)  # meters
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    rating = Column(Integer, nullable=False)  # 1..5
    comment = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)

    # Line items and the price breakdown are frozen at creation, so JSON is enough.
    items = Column(JSON, nullable=False)
    price_breakdown = Column(JSON, nullable=False)
    total_amount = Column(Integer, nullable=False)  # minor units
    distance_meters = Column(Integer, nullable=False, default=0)

    status = Column(String, nullable=False, default="pending", index=True)
    payment_status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=False)
    pickup_type = Column(String, nullable=False)
    pickup_time = Column(DateTime(timezone=True), nullable=False)
    estimated_preparation_time = Column(Integer, nullable=False)
    actual_pickup_time = Column(DateTime(timezone=True))
    notes = Column(Text)

    # Compare-and-swap token, bumped on every committed mutation
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
