from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.core.exceptions import (
    APIError,
    InsufficientStock,
    InvalidStatusTransition,
    NotResourceOwner,
    OrderNotFound,
    OrderPlacementFailed,
    OrderStatusFinal,
    UnknownProduct,
)
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.order_status_history import OrderStatusHistory
from storefront.models.product import Product
from storefront.models.user import User
from storefront.schemas.order import OrderCreate, OrderLineCreate, OrderResponse
from storefront.services.order_state_machine import order_state_machine

logger = structlog.get_logger()

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def serialize_order(order: Order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def _aggregate_quantities(lines: Iterable[OrderLineCreate]) -> Dict[int, int]:
    requested: Dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
    return requested


def _lock_products(db: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """Load and row-lock products in ascending id order to avoid lock-order deadlocks."""
    products = (
        db.query(Product)
        .populate_existing()
        .filter(Product.id.in_(sorted(product_ids)))
        .order_by(Product.id.asc())
        .with_for_update()
        .all()
    )
    return {product.id: product for product in products}


def _validate_stock(products: Dict[int, Product], requested: Dict[int, int]) -> None:
    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.quantity < quantity:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available=product.quantity,
                requested=quantity,
            )


def _decrement_stock(db: Session, product: Product, quantity: int) -> None:
    """Decrement stock only if enough is still available at write time."""
    result = db.execute(
        update(Product)
        .where(Product.id == product.id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = db.query(Product.quantity).filter(Product.id == product.id).scalar() or 0
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=available,
            requested=quantity,
        )


def _restock(db: Session, product_id: int, quantity: int) -> None:
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity)
        .execution_options(synchronize_session=False)
    )


def place_order(db: Session, user: User, order_in: OrderCreate) -> Order:
    """
    Create an order from a cart snapshot in a single transaction.

    Every referenced product must exist and have enough stock for the
    combined quantity requested. Prices are read from the catalog at this
    moment and snapshotted onto the order lines. Any failure rolls back the
    order, its lines and every stock decrement.
    """
    requested = _aggregate_quantities(order_in.cart_items)

    try:
        products = _lock_products(db, requested.keys())

        for index, line in enumerate(order_in.cart_items):
            if line.product_id not in products:
                raise UnknownProduct(f"cart_items.{index}.product_id", line.product_id)

        _validate_stock(products, requested)

        subtotal = sum(
            (to_money(products[line.product_id].price) * line.quantity for line in order_in.cart_items),
            Decimal("0.00"),
        )
        subtotal = to_money(subtotal)
        shipping_fee = to_money(order_in.shipping_fee)
        total = subtotal + shipping_fee

        order = Order(
            user_id=user.id,
            shipping_address=order_in.shipping_address,
            payment_method=order_in.payment_method,
            shipping_fee=shipping_fee,
            subtotal=subtotal,
            total=total,
            status=OrderStatus.PENDING,
        )
        db.add(order)
        db.flush()

        for line in order_in.cart_items:
            product = products[line.product_id]
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    price=to_money(product.price),
                )
            )

        for product_id in sorted(requested):
            _decrement_stock(db, products[product_id], requested[product_id])

        db.add(
            OrderStatusHistory(
                order_id=order.id,
                old_status=None,
                new_status=OrderStatus.PENDING.value,
                changed_by=None,
            )
        )
        db.commit()
    except APIError as exc:
        db.rollback()
        logger.warning(
            "order_rejected",
            user_id=user.id,
            reason=exc.message,
            status_code=exc.status_code,
        )
        raise
    except Exception as exc:
        db.rollback()
        logger.exception(
            "order_creation_failed",
            user_id=user.id,
            error_type=type(exc).__name__,
            cart_items=[line.model_dump() for line in order_in.cart_items],
            shipping_fee=str(order_in.shipping_fee),
            payment_method=order_in.payment_method.value,
        )
        raise OrderPlacementFailed() from exc

    db.refresh(order)
    logger.info(
        "order_created",
        order_id=order.id,
        user_id=user.id,
        subtotal=str(order.subtotal),
        total=str(order.total),
        line_count=len(order.items),
    )
    return order


def list_orders(db: Session, user: User) -> List[Order]:
    return (
        db.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(db: Session, user: User, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound()
    if order.user_id != user.id:
        logger.warning("order_access_denied", order_id=order_id, user_id=user.id)
        raise NotResourceOwner()
    return order


def get_status_history(db: Session, user: User, order_id: int) -> List[OrderStatusHistory]:
    order = get_order(db, user, order_id)
    return list(order.status_history)


def update_status(db: Session, admin: User, order_id: int, new_status: OrderStatus) -> Order:
    """Move an order along the status graph. Admin only."""
    order = (
        db.query(Order)
        .populate_existing()
        .filter(Order.id == order_id)
        .with_for_update()
        .first()
    )
    if not order:
        raise OrderNotFound()

    current_status = order.status
    if order_state_machine.is_terminal_state(current_status):
        raise OrderStatusFinal(current_status.value)
    if not order_state_machine.can_transition(current_status, new_status):
        allowed = [status.value for status in order_state_machine.get_valid_transitions(current_status)]
        raise InvalidStatusTransition(current_status.value, new_status.value, allowed)

    try:
        if order_state_machine.releases_stock(current_status, new_status):
            for item in order.items:
                # Lines whose product was deleted have nothing to return to.
                if item.product_id is not None:
                    _restock(db, item.product_id, item.quantity)

        order.status = new_status
        db.add(
            OrderStatusHistory(
                order_id=order.id,
                old_status=current_status.value,
                new_status=new_status.value,
                changed_by=admin.id,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        "order_status_updated",
        order_id=order.id,
        old_status=current_status.value,
        new_status=new_status.value,
        admin_user_id=admin.id,
    )
    return order
