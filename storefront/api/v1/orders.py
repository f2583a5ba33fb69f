from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.core.rate_limiter import limiter
from storefront.db.session import get_db
from storefront.models.user import User
from storefront.schemas.common import MAX_ID
from storefront.schemas.order import OrderCreate, OrderStatusHistoryResponse, OrderStatusUpdate
from storefront.services import order_service
from storefront.utils.response import success

router = APIRouter()


@router.post(
    "",
    response_model=dict,
    summary="Place order",
    description="""
Places an order from the cart snapshot sent in the request body.

Process:
1. Resolves every product in `cart_items`; unknown ids fail the request
2. Locks the products and checks the combined quantity against current stock
3. Computes subtotal from current prices and total = subtotal + shipping_fee
4. Creates the order and its lines with a price snapshot
5. Decrements stock with a conditional update

Steps 1-5 are one transaction: on any failure nothing is persisted.
""",
    responses={
        200: {"description": "Order placed"},
        401: {"description": "Authentication required"},
        422: {"description": "Validation error or insufficient stock"},
        500: {"description": "Unexpected failure; transaction rolled back"},
    },
)
@router.post("/", response_model=dict, include_in_schema=False)
@limiter.limit("10/minute")
def create_order(
    request: Request,
    order_data: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    order = order_service.place_order(db, current_user, order_data)
    return success(
        data=order_service.serialize_order(order),
        message="Order placed successfully",
    )


@router.get("", response_model=dict)
@router.get("/", response_model=dict, include_in_schema=False)
@limiter.limit("30/minute")
def get_user_orders(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user's order history"""
    orders = order_service.list_orders(db, current_user)
    return success(
        data=[order_service.serialize_order(order) for order in orders],
        message="Orders retrieved",
    )


@router.get("/{order_id}", response_model=dict)
@limiter.limit("30/minute")
def get_order_detail(
    request: Request,
    order_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get order details (owner only)"""
    order = order_service.get_order(db, current_user, order_id)
    return success(data=order_service.serialize_order(order), message="Order detail retrieved")


@router.get("/{order_id}/history", response_model=dict)
@limiter.limit("30/minute")
def get_order_history(
    request: Request,
    order_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the status change history of an order (owner only)"""
    history = order_service.get_status_history(db, current_user, order_id)
    return success(
        data=[OrderStatusHistoryResponse.model_validate(entry).model_dump(mode="json") for entry in history],
        message="Order history retrieved",
    )


@router.put("/{order_id}/status", response_model=dict)
@limiter.limit("20/minute")
def update_order_status(
    request: Request,
    status_update: OrderStatusUpdate,
    order_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update order status (admin only)."""
    order = order_service.update_status(db, current_user, order_id, status_update.status)
    return success(
        data=order_service.serialize_order(order),
        message="Order status updated successfully",
    )
