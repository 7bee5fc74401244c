"""
Domain exceptions for the marketplace.
Services raise these; routers convert them to HTTPException with to_http_exception.
"""
from fastapi import HTTPException, status
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base exception class for all marketplace errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NotAuthenticated(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required", error_code: str = "NOT_AUTHENTICATED", details: Dict[str, Any] = None):
        super().__init__(message, error_code, details)


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", error_code: str = "FORBIDDEN", details: Dict[str, Any] = None):
        super().__init__(message, error_code, details)


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found", error_code: str = "NOT_FOUND", details: Dict[str, Any] = None):
        super().__init__(message, error_code, details)


class ProductNotFound(NotFound):
    def __init__(self, product_id: str):
        super().__init__("Product not found", "PRODUCT_NOT_FOUND", {"product_id": product_id})


class ProfileNotFound(NotFound):
    def __init__(self, user_id: str):
        super().__init__("User profile not found", "PROFILE_NOT_FOUND", {"user_id": user_id})


class OrderNotFound(NotFound):
    def __init__(self, order_id: str):
        super().__init__("Order not found", "ORDER_NOT_FOUND", {"order_id": order_id})


class InsufficientStock(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: str, requested: int, available: int, unit: Optional[str] = None):
        unit_suffix = f" {unit}" if unit else ""
        super().__init__(
            f"Only {available}{unit_suffix} available",
            "INSUFFICIENT_STOCK",
            {"product_id": product_id, "requested": requested, "available": available}
        )
        self.requested = requested
        self.available = available


class ValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", error_code: str = "VALIDATION_ERROR", details: Dict[str, Any] = None):
        super().__init__(message, error_code, details)


class PersistenceError(MarketplaceError):
    """A store read or write failed; details["step"] names the failing step."""

    def __init__(self, step: str, message: str = "Store operation failed", details: Dict[str, Any] = None):
        super().__init__(message, "PERSISTENCE_ERROR", {"step": step, **(details or {})})
        self.step = step


def to_http_exception(error: MarketplaceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
