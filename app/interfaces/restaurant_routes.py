from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from app.application.review_aggregator import ReviewAggregator
from app.domain import geo, lifecycle
from app.domain.errors import Forbidden
from app.domain.models import Restaurant
from app.domain.schemas import (
    Coordinates,
    Identity,
    RatingOut,
    RestaurantCreate,
    RestaurantOut,
    ReviewCreate,
)
from app.interfaces.dependencies import get_identity, get_review_aggregator

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


def to_out(restaurant: Restaurant, rating: RatingOut, distance: Optional[int] = None) -> RestaurantOut:
    return RestaurantOut(
        id=restaurant.id,
        owner_id=restaurant.owner_id,
        name=restaurant.name,
        location=Coordinates(latitude=restaurant.latitude, longitude=restaurant.longitude),
        average_preparation_time=restaurant.average_preparation_time,
        max_delivery_distance=restaurant.max_delivery_distance,
        is_active=restaurant.is_active,
        rating=rating.rating,
        review_count=rating.review_count,
        distance_meters=distance,
    )


@router.post("", response_model=RestaurantOut, status_code=201)
def create_restaurant(
    payload: RestaurantCreate,
    request: Request,
    identity: Identity = Depends(get_identity),
    aggregator: ReviewAggregator = Depends(get_review_aggregator),
):
    if not lifecycle.is_staff(identity):
        raise Forbidden("Only restaurant owners or admins can register restaurants")
    geo.validate(payload.location)
    restaurant = request.app.state.restaurant_repo.create_restaurant(
        Restaurant(
            owner_id=identity.user_id,
            name=payload.name,
            latitude=payload.location.latitude,
            longitude=payload.location.longitude,
            average_preparation_time=payload.average_preparation_time,
            max_delivery_distance=payload.max_delivery_distance,
            is_active=True,
        )
    )
    return to_out(restaurant, aggregator.rating(restaurant.id))


@router.get("/nearby", response_model=List[RestaurantOut])
def nearby_restaurants(
    request: Request,
    latitude: float,
    longitude: float,
    max_distance: int = Query(5000, ge=0, description="Meters"),
    aggregator: ReviewAggregator = Depends(get_review_aggregator),
):
    origin = Coordinates(latitude=latitude, longitude=longitude)
    geo.validate(origin)
    # Cheap pre-filter; the extra meter covers distance() rounding to the nearest meter
    box = geo.bounding_box(origin, (max_distance + 1) / 1000)
    restaurants = [
        r for r in request.app.state.restaurant_repo.list_active_restaurants()
        if geo.is_in_bounding_box(r, box)
    ]
    in_range = geo.sort_by_distance(origin, geo.nearby(origin, restaurants, max_distance))
    return [to_out(r, aggregator.rating(r.id), geo.distance(origin, r)) for r in in_range]


@router.get("/{restaurant_id}", response_model=RestaurantOut)
def get_restaurant(
    restaurant_id: int,
    request: Request,
    aggregator: ReviewAggregator = Depends(get_review_aggregator),
):
    restaurant = request.app.state.restaurant_repo.get_restaurant(restaurant_id)
    return to_out(restaurant, aggregator.rating(restaurant.id))


@router.post("/{restaurant_id}/reviews", response_model=RatingOut, status_code=201)
def add_review(
    restaurant_id: int,
    payload: ReviewCreate,
    identity: Identity = Depends(get_identity),
    aggregator: ReviewAggregator = Depends(get_review_aggregator),
):
    return aggregator.add_review(identity, restaurant_id, payload)
