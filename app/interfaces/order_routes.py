import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.application.order_service import OrderService
from app.domain.enums import OrderStatus, PaymentStatus
from app.domain.schemas import (
    Identity,
    LifecycleEvent,
    OrderCreate,
    OrderFilter,
    OrderOut,
    Page,
    PaymentUpdate,
    Quote,
    QuoteRequest,
)
from app.infrastructure.repositories.order_repository import SORTABLE_FIELDS
from app.interfaces.dependencies import get_identity, get_order_service

router = APIRouter(prefix="/orders", tags=["orders"])
logger = logging.getLogger(__name__)


def parse_sort(sort: Optional[str]):
    """``"-created_at,total_amount"`` -> ``[("created_at", -1), ("total_amount", 1)]``"""
    if not sort:
        return None
    fields = []
    for part in sort.split(","):
        part = part.strip()
        direction = -1 if part.startswith("-") else 1
        name = part.lstrip("-+")
        if name not in SORTABLE_FIELDS:
            raise HTTPException(status_code=400, detail=f"Cannot sort by '{name}'")
        fields.append((name, direction))
    return fields


@router.post("/quote", response_model=Quote)
def quote_order(
    payload: QuoteRequest,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.quote(payload)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.create_order(identity, payload)


@router.get("", response_model=List[OrderOut])
def list_orders(
    status: Optional[OrderStatus] = None,
    restaurant_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    filters = OrderFilter(
        status=status,
        restaurant_id=restaurant_id,
        start_date=start_date,
        end_date=end_date,
    )
    return service.list_orders(identity, filters, sort=parse_sort(sort), page=Page(page=page, limit=limit))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(identity, order_id)


@router.post("/{order_id}/confirm", response_model=OrderOut)
def confirm_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.confirm(identity, order_id)


@router.post("/{order_id}/advance", response_model=OrderOut)
def advance_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.advance(identity, order_id)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.cancel(identity, order_id)


@router.post("/{order_id}/payment", response_model=OrderOut)
def update_payment(
    order_id: int,
    payload: PaymentUpdate,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    return service.update_payment_status(identity, order_id, PaymentStatus(payload.payment_status))


@router.get("/{order_id}/events", response_model=List[LifecycleEvent])
def order_events(
    order_id: int,
    request: Request,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
):
    # Same visibility rules as reading the order itself
    service.get_order(identity, order_id)
    return request.app.state.event_log.history(order_id)
