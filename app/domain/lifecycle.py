"""
Order lifecycle state machine.

    pending -> confirmed -> preparing -> ready -> completed
    pending -> cancelled

``completed`` and ``cancelled`` are terminal. Every action is declared once in
``TRANSITIONS`` together with the predicate deciding who may perform it; the
service layer never branches on roles itself.
"""
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from app.domain.enums import OrderStatus, PaymentStatus, Role
from app.domain.errors import Forbidden, InvalidTransition
from app.domain.schemas import Identity, OrderFilter

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


# --- Authorization predicates ---

def is_staff(identity: Identity, order=None) -> bool:
    return identity.role in (Role.RESTAURANT_OWNER, Role.ADMIN)


def is_owner_or_admin(identity: Identity, order) -> bool:
    if identity.role == Role.ADMIN:
        return True
    return identity.role == Role.CUSTOMER and identity.user_id == order.user_id


def is_customer(identity: Identity, order=None) -> bool:
    return identity.role == Role.CUSTOMER


def can_view(identity: Identity, order) -> bool:
    return is_staff(identity) or identity.user_id == order.user_id


@dataclass(frozen=True)
class Transition:
    action: str
    source: OrderStatus
    target: OrderStatus
    allowed: Callable[[Identity, object], bool]


TRANSITIONS: Dict[str, Transition] = {
    t.action: t
    for t in (
        Transition("confirm", OrderStatus.PENDING, OrderStatus.CONFIRMED, is_staff),
        Transition("start_preparing", OrderStatus.CONFIRMED, OrderStatus.PREPARING, is_staff),
        Transition("mark_ready", OrderStatus.PREPARING, OrderStatus.READY, is_staff),
        Transition("complete", OrderStatus.READY, OrderStatus.COMPLETED, is_staff),
        Transition("cancel", OrderStatus.PENDING, OrderStatus.CANCELLED, is_owner_or_admin),
    )
}

# "advance" is one forward step from whichever kitchen state the order is in
ADVANCE_ACTIONS: Dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "start_preparing",
    OrderStatus.PREPARING: "mark_ready",
    OrderStatus.READY: "complete",
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, frozenset] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}


def authorize_create(identity: Identity) -> None:
    if not is_customer(identity):
        raise Forbidden("Only customers can place orders")


def authorize_view(identity: Identity, order) -> None:
    if not can_view(identity, order):
        raise Forbidden("Access denied")


def resolve(action: str, identity: Identity, order) -> Transition:
    """
    Returns the transition ``action`` would apply to ``order``.
    Raises Forbidden when the actor may not perform it and InvalidTransition
    when the order is not in the action's source status.
    """
    current = OrderStatus(order.status)
    if action == "advance":
        if not is_staff(identity, order):
            raise Forbidden("Only restaurant owners or admins can advance orders")
        action = ADVANCE_ACTIONS.get(current)
        if action is None:
            raise InvalidTransition(f"Cannot advance an order in status '{current.value}'")

    transition = TRANSITIONS.get(action)
    if transition is None:
        raise InvalidTransition(f"Unknown action '{action}'")
    if not transition.allowed(identity, order):
        raise Forbidden(f"Not allowed to {action} this order")
    if current != transition.source:
        raise InvalidTransition(
            f"Cannot {action} an order in status '{current.value}'"
        )
    return transition


def resolve_payment(identity: Identity, order, target: PaymentStatus) -> PaymentStatus:
    if not is_staff(identity, order):
        raise Forbidden("Only restaurant owners or admins can change payment status")
    current = PaymentStatus(order.payment_status)
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot change payment status from '{current.value}' to '{target.value}'"
        )
    if target == PaymentStatus.PAID and OrderStatus(order.status) == OrderStatus.CANCELLED:
        raise InvalidTransition("A cancelled order cannot be marked as paid")
    return current


def scope_filter(identity: Identity, filters: Optional[OrderFilter]) -> OrderFilter:
    """Non-admins only ever see their own orders, whatever filter they sent."""
    filters = filters.model_copy() if filters else OrderFilter()
    if identity.role != Role.ADMIN:
        filters.user_id = identity.user_id
    return filters


def generate_order_number(now: datetime, rng: random.Random) -> str:
    return f"{now:%y%m%d}-{rng.randrange(1000):03d}"
