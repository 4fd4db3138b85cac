"""
Domain exceptions for the commerce backend.

Services raise these; the API layer maps them onto HTTP responses.
"""


class CommerceException(Exception):
    """Base exception for all commerce errors"""
    def __init__(self, message: str, code: str = "COMMERCE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def details(self) -> dict:
        return {}


class NotFoundException(CommerceException):
    """Referenced user/product/order/coupon/payment does not exist"""
    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        suffix = f": {identifier}" if identifier is not None else ""
        super().__init__(
            message=f"{resource} not found{suffix}",
            code="NOT_FOUND"
        )

    def details(self) -> dict:
        return {"resource": self.resource, "identifier": str(self.identifier)}


class ForbiddenException(CommerceException):
    """Caller does not own the resource or lacks the required tier"""
    def __init__(self, message: str):
        super().__init__(message=message, code="FORBIDDEN")


class InsufficientStockException(CommerceException):
    """Requested quantity exceeds available stock"""
    def __init__(self, product_id, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            message=(
                f"Insufficient stock for '{product_name}': "
                f"requested {requested}, available {available}"
            ),
            code="INSUFFICIENT_STOCK"
        )

    def details(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        }


class InvalidOrderStateException(CommerceException):
    """Transition requested from a state that does not permit it"""
    def __init__(self, current_status: str, action: str):
        self.current_status = current_status
        self.action = action
        super().__init__(
            message=f"Cannot {action} while in status {current_status}",
            code="INVALID_ORDER_STATE"
        )

    def details(self) -> dict:
        return {"current_status": self.current_status, "action": self.action}


class CouponUnusableException(CommerceException):
    """Coupon already used, expired, or not owned by the caller"""
    def __init__(self, coupon_id, reason: str = "coupon cannot be used"):
        self.coupon_id = coupon_id
        self.reason = reason
        super().__init__(
            message=f"Coupon {coupon_id} is not usable: {reason}",
            code="COUPON_UNUSABLE"
        )

    def details(self) -> dict:
        return {"coupon_id": str(self.coupon_id), "reason": self.reason}


class AmountMismatchException(CommerceException):
    """Client-declared amount differs from the authoritative total"""
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"Amount mismatch: expected {expected}, got {actual}",
            code="AMOUNT_MISMATCH"
        )

    def details(self) -> dict:
        return {"expected": self.expected, "actual": self.actual}


class ValidationException(CommerceException):
    """Exception raised for validation errors"""
    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR"
        )

    def details(self) -> dict:
        return {"field": self.field} if self.field else {}


class ConflictException(CommerceException):
    """Unique resource already exists"""
    def __init__(self, message: str):
        super().__init__(message=message, code="CONFLICT")


class InvalidCredentialsException(CommerceException):
    """Email/password pair did not match"""
    def __init__(self):
        super().__init__(message="Invalid email or password", code="INVALID_CREDENTIALS")
