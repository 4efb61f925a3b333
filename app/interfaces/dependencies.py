from typing import Optional

from fastapi import Header, HTTPException, Request

from app.application.order_service import OrderService
from app.application.review_aggregator import ReviewAggregator
from app.domain.enums import Role
from app.domain.schemas import Identity


def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Identity:
    """
    Identity of the caller, as forwarded by the authenticating gateway.
    Token verification happens upstream; here we only trust the headers.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing identity headers")
    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role '{x_user_role}'")
    return Identity(user_id=x_user_id, role=role)


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_review_aggregator(request: Request) -> ReviewAggregator:
    return request.app.state.review_aggregator
