from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.core.rate_limiter import limiter
from storefront.db.session import get_db
from storefront.models.user import User
from storefront.schemas.cart import CartItemCreate, CartItemUpdate
from storefront.schemas.common import MAX_ID
from storefront.services import cart_service
from storefront.utils.response import success

router = APIRouter()


@router.get("", response_model=dict)
@router.get("/", response_model=dict, include_in_schema=False)
@limiter.limit("60/minute")
def get_cart(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user's cart"""
    return success(data=cart_service.get_cart(db, current_user), message="Cart retrieved")


@router.get("/count", response_model=dict)
@limiter.limit("60/minute")
def get_cart_count(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(data={"cart_count": cart_service.count_items(db, current_user)})


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@limiter.limit("60/minute")
def add_to_cart(
    request: Request,
    cart_item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add item to cart"""
    item = cart_service.add_item(db, current_user, cart_item)
    return success(
        data=cart_service.serialize_item(item),
        message="Product added to cart successfully",
    )


@router.put("/{item_id}", response_model=dict)
@limiter.limit("60/minute")
def update_cart_item(
    request: Request,
    update_data: CartItemUpdate,
    item_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update cart item quantity"""
    item = cart_service.update_item(db, current_user, item_id, update_data)
    return success(data=cart_service.serialize_item(item), message="Cart updated successfully")


@router.delete("/{item_id}", response_model=dict)
@limiter.limit("60/minute")
def remove_from_cart(
    request: Request,
    item_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove item from cart"""
    cart_service.remove_item(db, current_user, item_id)
    return success(message="Item removed from cart successfully")


@router.delete("", response_model=dict)
@router.delete("/", response_model=dict, include_in_schema=False)
def clear_cart(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Clear entire cart"""
    removed = cart_service.clear_cart(db, current_user)
    return success(data={"removed": removed}, message="Cart cleared")
