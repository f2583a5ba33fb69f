from decimal import Decimal

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.exceptions import (
    CartItemNotFound,
    InsufficientStock,
    NotResourceOwner,
    UnknownProduct,
)
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.models.user import User
from storefront.schemas.cart import CartItemCreate, CartItemResponse, CartItemUpdate, CartResponse

logger = structlog.get_logger()


def _current_product(db: Session, product_id: int) -> Product:
    # populate_existing: stock must come from the database, not the identity map
    product = (
        db.query(Product)
        .populate_existing()
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        raise UnknownProduct("product_id", product_id)
    return product


def _check_stock(product: Product, requested: int) -> None:
    if product.quantity < requested:
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=product.quantity,
            requested=requested,
        )


def _get_owned_item(db: Session, user: User, item_id: int) -> CartItem:
    cart_item = db.query(CartItem).filter(CartItem.id == item_id).first()
    if not cart_item:
        raise CartItemNotFound()
    if cart_item.user_id != user.id:
        logger.warning("cart_item_access_denied", cart_item_id=item_id, user_id=user.id)
        raise NotResourceOwner()
    return cart_item


def _item_response(item: CartItem) -> CartItemResponse:
    product = item.product
    return CartItemResponse(**{
        "id": item.id,
        "product_name": product.name,
        "quantity": item.quantity,
        "price_per_item": product.price,
        "total_price": item.total_price,
        "product": {
            "id": product.id,
            "name": product.name,
            "price": product.price,
            "description": product.description,
            "available_quantity": product.quantity,
        },
    })


def serialize_item(item: CartItem) -> dict:
    return _item_response(item).model_dump(mode="json")


def get_cart(db: Session, user: User) -> dict:
    cart_items = (
        db.query(CartItem)
        .filter(CartItem.user_id == user.id)
        .order_by(CartItem.id.asc())
        .all()
    )
    items = [_item_response(item) for item in cart_items]
    total = sum((item.total_price for item in cart_items), Decimal("0.00"))
    return CartResponse(
        items=items,
        total=total,
        item_count=sum(item.quantity for item in cart_items),
    ).model_dump(mode="json")


def count_items(db: Session, user: User) -> int:
    count = (
        db.query(func.coalesce(func.sum(CartItem.quantity), 0))
        .filter(CartItem.user_id == user.id)
        .scalar()
    )
    return int(count or 0)


def add_item(db: Session, user: User, item_in: CartItemCreate, _retry: bool = True) -> CartItem:
    """Add a product to the cart, merging with an existing line for the same product."""
    product = _current_product(db, item_in.product_id)
    _check_stock(product, item_in.quantity)

    existing_item = (
        db.query(CartItem)
        .filter(
            CartItem.user_id == user.id,
            CartItem.product_id == product.id,
        )
        .first()
    )

    if existing_item:
        new_quantity = existing_item.quantity + item_in.quantity
        _check_stock(product, new_quantity)
        existing_item.quantity = new_quantity
        db.commit()
        db.refresh(existing_item)
        logger.info("cart_item_merged", cart_item_id=existing_item.id, quantity=new_quantity)
        return existing_item

    cart_item = CartItem(
        user_id=user.id,
        product_id=product.id,
        quantity=item_in.quantity,
    )
    db.add(cart_item)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request created the line first; merge into it instead.
        db.rollback()
        if not _retry:
            raise
        return add_item(db, user, item_in, _retry=False)

    db.refresh(cart_item)
    logger.info("cart_item_added", cart_item_id=cart_item.id, product_id=product.id, quantity=cart_item.quantity)
    return cart_item


def update_item(db: Session, user: User, item_id: int, item_in: CartItemUpdate) -> CartItem:
    cart_item = _get_owned_item(db, user, item_id)
    product = _current_product(db, cart_item.product_id)
    _check_stock(product, item_in.quantity)

    cart_item.quantity = item_in.quantity
    db.commit()
    db.refresh(cart_item)
    return cart_item


def remove_item(db: Session, user: User, item_id: int) -> None:
    cart_item = _get_owned_item(db, user, item_id)
    db.delete(cart_item)
    db.commit()


def clear_cart(db: Session, user: User) -> int:
    removed = db.query(CartItem).filter(CartItem.user_id == user.id).delete()
    db.commit()
    return removed
