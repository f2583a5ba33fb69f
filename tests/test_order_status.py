import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import auth_headers, create_product
from storefront.models.order import OrderStatus
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.order_state_machine import order_state_machine


def _place_order(client: TestClient, user: User, product_id: int, quantity: int = 2) -> int:
    response = client.post(
        "/api/v1/orders",
        json={
            "shipping_address": "1 Main St",
            "payment_method": "cash on delivery",
            "shipping_fee": "100.00",
            "cart_items": [{"product_id": product_id, "quantity": quantity}],
        },
        headers=auth_headers(user),
    )
    assert response.status_code == 200
    return response.json()["data"]["id"]


def _set_status(client: TestClient, admin: User, order_id: int, status: str):
    return client.put(
        f"/api/v1/orders/{order_id}/status",
        json={"status": status},
        headers=auth_headers(admin),
    )


def _stock(db: Session, product_id: int) -> int:
    return db.query(Product.quantity).filter(Product.id == product_id).scalar()


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (OrderStatus.PENDING, OrderStatus.PROCESSING, True),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
        (OrderStatus.PENDING, OrderStatus.SHIPPED, False),
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED, True),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, False),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED, True),
        (OrderStatus.DELIVERED, OrderStatus.PENDING, False),
        (OrderStatus.CANCELLED, OrderStatus.PROCESSING, False),
    ],
)
def test_state_machine_transitions(current, target, allowed):
    assert order_state_machine.can_transition(current, target) is allowed


def test_terminal_states():
    assert order_state_machine.is_terminal_state(OrderStatus.DELIVERED)
    assert order_state_machine.is_terminal_state(OrderStatus.CANCELLED)
    assert not order_state_machine.is_terminal_state(OrderStatus.SHIPPED)
    assert order_state_machine.get_valid_transitions(OrderStatus.PROCESSING) == [
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
    ]


def test_admin_walks_order_to_delivered(
    client: TestClient, db_session: Session, customer: User, admin: User
):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id)

    for status in ("processing", "shipped", "delivered"):
        response = _set_status(client, admin, order_id, status)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == status

    history = client.get(f"/api/v1/orders/{order_id}/history", headers=auth_headers(customer))
    assert history.status_code == 200
    transitions = [(entry["old_status"], entry["new_status"]) for entry in history.json()["data"]]
    assert transitions == [
        (None, "pending"),
        ("pending", "processing"),
        ("processing", "shipped"),
        ("shipped", "delivered"),
    ]
    assert history.json()["data"][1]["changed_by"] == admin.id
    assert _stock(db_session, product.id) == 3


def test_illegal_transition_is_rejected(
    client: TestClient, db_session: Session, customer: User, admin: User
):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id)

    response = _set_status(client, admin, order_id, "delivered")

    assert response.status_code == 422
    payload = response.json()
    assert payload["message"] == "Cannot change order status from pending to delivered"
    assert payload["errors"] == {"status": ["Allowed next statuses: processing, cancelled."]}


def test_terminal_order_cannot_move(client: TestClient, db_session: Session, customer: User, admin: User):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id)
    _set_status(client, admin, order_id, "cancelled")

    response = _set_status(client, admin, order_id, "processing")

    assert response.status_code == 422
    assert response.json()["message"] == "Order is already cancelled and its status can no longer change"
    assert response.json()["errors"] == {"status": ["Allowed next statuses: none."]}


def test_unknown_status_value(client: TestClient, db_session: Session, customer: User, admin: User):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id)

    response = _set_status(client, admin, order_id, "lost")

    assert response.status_code == 422
    assert "status" in response.json()["errors"]


def test_cancelling_unshipped_order_restocks(
    client: TestClient, db_session: Session, customer: User, admin: User
):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id, quantity=3)
    assert _stock(db_session, product.id) == 2

    _set_status(client, admin, order_id, "processing")
    response = _set_status(client, admin, order_id, "cancelled")

    assert response.status_code == 200
    assert _stock(db_session, product.id) == 5


def test_status_update_requires_admin(client: TestClient, db_session: Session, customer: User):
    product = create_product(db_session, quantity=5)
    order_id = _place_order(client, customer, product.id)

    response = _set_status(client, customer, order_id, "processing")

    assert response.status_code == 403


def test_status_update_missing_order(client: TestClient, admin: User):
    response = _set_status(client, admin, 9999, "processing")

    assert response.status_code == 404
