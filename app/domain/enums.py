from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"


class PickupType(str, Enum):
    TAKEAWAY = "takeaway"
    DINE_IN = "dine-in"


class Role(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT_OWNER = "restaurant_owner"
    ADMIN = "admin"


class EventKind(str, Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    ORDER_STATUS = "order_status"
    PAYMENT_STATUS = "payment_status"
