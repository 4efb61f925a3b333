"""
Domain error taxonomy.

Every failure a core operation can produce is one of these classes. The HTTP
layer maps ``status_code`` straight onto the response; nothing here knows
about FastAPI.
"""


class OrderingError(Exception):
    status_code = 400
    kind = "OrderingError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"status": "fail", "error": self.kind, "message": self.message}


# --- 400: input / validation ---

class InvalidCoordinates(OrderingError):
    kind = "InvalidCoordinates"


class EmptyOrder(OrderingError):
    kind = "EmptyOrder"


class InvalidDiscount(OrderingError):
    kind = "InvalidDiscount"


class InvalidTotal(OrderingError):
    kind = "InvalidTotal"


class InvalidPickupTime(OrderingError):
    kind = "InvalidPickupTime"


class OutOfDeliveryRange(OrderingError):
    kind = "OutOfDeliveryRange"


# --- 403 / 404 ---

class Forbidden(OrderingError):
    status_code = 403
    kind = "Forbidden"


class NotFound(OrderingError):
    status_code = 404
    kind = "NotFound"


# --- 409: write conflicts ---

class ConcurrentModification(OrderingError):
    status_code = 409
    kind = "ConcurrentModification"


class OrderNumberExhausted(OrderingError):
    status_code = 409
    kind = "OrderNumberExhausted"


class OrderNumberCollision(ConcurrentModification):
    """Raised by repositories when the unique order-number index rejects an insert."""
    kind = "OrderNumberCollision"


# --- 422: business rule ---

class InvalidTransition(OrderingError):
    status_code = 422
    kind = "InvalidTransition"
