"""
Custom exceptions for the storefront application.
"""
from typing import Optional


class StorefrontException(Exception):
    """Base exception for storefront operations"""
    pass


class ValidationError(StorefrontException):
    """Raised when validation fails"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmptyCartError(ValidationError):
    """Raised when checkout is attempted with nothing in the cart"""
    def __init__(self):
        super().__init__("Cannot checkout empty cart")


class InvalidStatusError(ValidationError):
    """Raised when an order status is outside the known vocabulary"""
    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid order status: {status}")


class OrderNotFoundError(StorefrontException):
    """Raised when an order does not exist"""
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class StatusTransitionError(StorefrontException):
    """Raised when the status policy forbids a transition"""
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current} to {requested}")


class OrderIdCollisionError(StorefrontException):
    """Raised when no free order identifier was found"""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique order identifier after {attempts} attempts")


class RedisConnectionError(StorefrontException):
    """Raised when Redis connection fails"""
    pass


class CheckoutStateError(StorefrontException):
    """Raised when a checkout is driven from a state that does not allow it"""
    pass


class OrderApiError(StorefrontException):
    """Raised when a call to the order API fails"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
