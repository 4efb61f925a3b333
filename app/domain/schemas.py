"""
Pydantic schemas

Request bodies are validated here before anything reaches the core. Response
models mirror the stored documents.
"""
from datetime import datetime
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.enums import (
    EventKind,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PickupType,
    Role,
)

# -----------------------------
# Identity / geo
# -----------------------------

class Identity(BaseModel):
    user_id: str
    role: Role


class Coordinates(BaseModel):
    # Range checks live in app.domain.geo so they surface as InvalidCoordinates
    latitude: float
    longitude: float


# -----------------------------
# Orders
# -----------------------------

class SelectedOption(BaseModel):
    name: str = Field(..., min_length=1)
    price: int = Field(..., ge=0, description="Option surcharge in minor units")


class OrderItemIn(BaseModel):
    menu_item_id: str
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(..., ge=0, description="Unit price in minor units")
    selected_options: List[SelectedOption] = Field(default_factory=list)
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    restaurant_id: int
    items: List[OrderItemIn]
    payment_method: PaymentMethod
    pickup_type: PickupType
    pickup_time: datetime
    customer_location: Optional[Coordinates] = None
    discount_percentage: float = Field(0, allow_inf_nan=False)
    tip_percentage: float = Field(0, ge=0, allow_inf_nan=False)
    notes: Optional[str] = None


class QuoteRequest(BaseModel):
    restaurant_id: int
    items: List[OrderItemIn]
    customer_location: Optional[Coordinates] = None
    discount_percentage: float = Field(0, allow_inf_nan=False)
    tip_percentage: float = Field(0, ge=0, allow_inf_nan=False)


class PriceBreakdown(BaseModel):
    subtotal: int
    discount: int
    delivery_fee: int
    tax: int
    tip: int
    total: int
    loyalty_points: int


class Quote(PriceBreakdown):
    distance_meters: int
    estimated_travel_minutes: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: str
    restaurant_id: int
    items: List[OrderItemIn]
    total_amount: int
    price_breakdown: PriceBreakdown
    distance_meters: int
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    pickup_type: PickupType
    pickup_time: datetime
    estimated_preparation_time: int
    actual_pickup_time: Optional[datetime] = None
    notes: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime


class PaymentUpdate(BaseModel):
    payment_status: Literal["paid", "failed"]


class OrderFilter(BaseModel):
    status: Optional[OrderStatus] = None
    restaurant_id: Optional[int] = None
    user_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class Page(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# -----------------------------
# Events
# -----------------------------

class LifecycleEvent(BaseModel):
    order_id: int
    order_number: str
    user_id: str
    kind: EventKind
    previous_status: Optional[str] = None
    new_status: str
    timestamp: datetime
    total_amount: Optional[int] = None


# -----------------------------
# Restaurants / reviews
# -----------------------------

class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=2)
    location: Coordinates
    average_preparation_time: int = Field(20, ge=0, description="Minutes")
    max_delivery_distance: int = Field(5000, ge=0, description="Meters")


class RestaurantOut(BaseModel):
    id: int
    owner_id: str
    name: str
    location: Coordinates
    average_preparation_time: int
    max_delivery_distance: int
    is_active: bool
    rating: float
    review_count: int
    distance_meters: Optional[int] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class RatingOut(BaseModel):
    restaurant_id: int
    rating: float
    review_count: int
