from fastapi import status
from typing import Any, Dict, List, Optional, Union


ErrorDetail = Union[List[Any], Dict[str, List[str]]]


class APIError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[ErrorDetail] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


def field_error(field: str, message: str) -> Dict[str, List[str]]:
    return {field: [message]}


class InvalidCredentials(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message="Invalid login credentials",
        )


class AdminCredentialsRequired(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Access denied. Admin credentials required.",
        )


class AdminRegistrationForbidden(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Admin registration not allowed",
        )


class EmailAlreadyRegistered(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Validation failed",
            errors=field_error("email", "The email has already been taken."),
        )


class NotResourceOwner(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Unauthorized",
        )


class ProductNotFound(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message="Product not found",
        )


class UnknownProduct(APIError):
    """A request body references a product id that does not exist."""

    def __init__(self, field: str, product_id: int):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Validation failed",
            errors=field_error(field, f"The selected product {product_id} is invalid."),
        )


class DuplicateBarcode(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Validation failed",
            errors=field_error("barcode", "The barcode has already been taken."),
        )


class CartItemNotFound(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message="Cart item not found",
        )


class InsufficientStock(APIError):
    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message=f"Insufficient stock for {product_name}. Available: {available}",
            errors=[
                {
                    "product_id": product_id,
                    "product_name": product_name,
                    "available_quantity": available,
                    "requested_quantity": requested,
                }
            ],
        )
        self.product_id = product_id
        self.available = available


class OrderNotFound(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message="Order not found",
        )


class InvalidStatusTransition(APIError):
    def __init__(self, current: str, requested: str, allowed: List[str]):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message=f"Cannot change order status from {current} to {requested}",
            errors=field_error(
                "status",
                f"Allowed next statuses: {', '.join(allowed) if allowed else 'none'}.",
            ),
        )


class OrderStatusFinal(APIError):
    def __init__(self, current: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message=f"Order is already {current} and its status can no longer change",
            errors=field_error("status", "Allowed next statuses: none."),
        )


class OrderPlacementFailed(APIError):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create order",
        )
