"""Message templates for lifecycle notifications, keyed by event kind and status."""
from typing import Dict, Tuple

from jinja2 import Environment, StrictUndefined

from app.domain.enums import EventKind
from app.domain.pricing import format_price
from app.domain.schemas import LifecycleEvent

_env = Environment(undefined=StrictUndefined, autoescape=False)

ORDER_STATUS_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "pending": (
        "Order Received",
        "Your order #{{ order_number }}{% if amount %} for {{ amount }}{% endif %} "
        "has been received and is being processed.",
    ),
    "confirmed": ("Order Confirmed", "Your order #{{ order_number }} has been confirmed and is being prepared."),
    "preparing": ("Order Preparing", "Your order #{{ order_number }} is being prepared by the restaurant."),
    "ready": ("Order Ready", "Your order #{{ order_number }} is ready for pickup."),
    "completed": ("Order Completed", "Your order #{{ order_number }} has been picked up. Enjoy your meal!"),
    "cancelled": ("Order Cancelled", "Your order #{{ order_number }} has been cancelled."),
}

PAYMENT_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "pending": ("Payment Pending", "Payment for order #{{ order_number }} is pending."),
    "paid": (
        "Payment Completed",
        "Payment{% if amount %} of {{ amount }}{% endif %} for order #{{ order_number }} has been completed.",
    ),
    "failed": ("Payment Failed", "Payment for order #{{ order_number }} has failed."),
}

FALLBACK = ("Order Update", "Your order #{{ order_number }} status has been updated to {{ status }}.")


def render(event: LifecycleEvent) -> Tuple[str, str]:
    """Returns (title, message) for an event."""
    if event.kind == EventKind.PAYMENT_STATUS:
        title, body = PAYMENT_TEMPLATES.get(event.new_status, FALLBACK)
    else:
        title, body = ORDER_STATUS_TEMPLATES.get(event.new_status, FALLBACK)
    amount = format_price(event.total_amount) if event.total_amount is not None else None
    message = _env.from_string(body).render(
        order_number=event.order_number,
        status=event.new_status,
        amount=amount,
    )
    return title, message
