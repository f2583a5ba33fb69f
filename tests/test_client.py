from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import PASSWORD, create_product
from storefront.client import ClientError, LocalCart, Role, StorefrontClient, resolve_view, role_of
from storefront.client.seed import SAMPLE_PRODUCTS, seed_catalog
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User


def _product_dict(product_id: int = 1, price: str = "100.00", quantity: int = 5) -> dict:
    return {"id": product_id, "name": f"Item {product_id}", "price": price, "quantity": quantity}


# Routing


@pytest.mark.parametrize(
    "role, path, expected",
    [
        (None, "/", "/"),
        (None, "/login", "/login"),
        (None, "/cart", "/login"),
        (None, "/admin/products", "/login"),
        (Role.CUSTOMER, "/cart", "/cart"),
        (Role.CUSTOMER, "/orders/", "/orders"),
        (Role.CUSTOMER, "/admin/products/create", "/"),
        (Role.CUSTOMER, "/admin/products/edit/7", "/"),
        (Role.ADMIN, "/", "/admin/products"),
        (Role.ADMIN, "/checkout", "/admin/products"),
        (Role.ADMIN, "/admin/products/edit/7", "/admin/products/edit/7"),
        (Role.ADMIN, "/nowhere", "/admin/products"),
        (Role.CUSTOMER, "/nowhere", "/"),
    ],
)
def test_resolve_view(role, path, expected):
    assert resolve_view(role, path) == expected


def test_role_of_user_payload():
    assert role_of(None) is None
    assert role_of({"role": "admin"}) is Role.ADMIN
    assert role_of({"role": "user"}) is Role.CUSTOMER
    with pytest.raises(ValueError):
        role_of({"role": "superuser"})


# Local cart


def test_local_cart_merges_and_caps_at_known_stock(tmp_path):
    cart = LocalCart(tmp_path / "cart.json")

    assert cart.add(_product_dict(quantity=5), 3) is True
    assert cart.add(_product_dict(quantity=5), 2) is True
    assert cart.add(_product_dict(quantity=5), 1) is False
    assert cart.count() == 5
    assert cart.total() == Decimal("500.00")


def test_local_cart_update_and_remove(tmp_path):
    cart = LocalCart(tmp_path / "cart.json")
    cart.add(_product_dict(1), 1)
    cart.add(_product_dict(2, price="2.50"), 2)

    assert cart.update_quantity(1, 9) is False
    assert cart.update_quantity(1, 4) is True
    assert cart.update_quantity(2, 0) is True
    assert cart.update_quantity(3, 1) is False
    assert cart.snapshot() == [{"product_id": 1, "quantity": 4}]

    cart.remove(1)
    assert cart.count() == 0


def test_local_cart_persists_between_instances(tmp_path):
    path = tmp_path / "cart.json"
    LocalCart(path).add(_product_dict(3, price="12.34"), 2)

    reloaded = LocalCart(path)

    assert reloaded.snapshot() == [{"product_id": 3, "quantity": 2}]
    assert reloaded.total() == Decimal("24.68")


def test_local_cart_ignores_unreadable_file(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text("{not json", encoding="utf-8")

    assert LocalCart(path).count() == 0


def test_local_cart_ignores_wrongly_shaped_entries(tmp_path):
    path = tmp_path / "cart.json"

    for content in ('[{"foo": 1}]', "[1, 2]", '{"product_id": 1}'):
        path.write_text(content, encoding="utf-8")

        assert LocalCart(path).count() == 0


# HTTP client


def test_client_register_login_logout(client: TestClient):
    api = StorefrontClient(http=client)

    user = api.register("Casey", "casey@example.com", PASSWORD, "0123456789")
    assert user["role"] == "user"
    assert api.current_user()["email"] == "casey@example.com"

    api.logout()
    assert api.token is None

    with pytest.raises(ClientError) as exc_info:
        api.current_user()
    assert exc_info.value.status_code == 401


def test_client_admin_login_mismatch(client: TestClient, customer: User):
    api = StorefrontClient(http=client)

    with pytest.raises(ClientError) as exc_info:
        api.login(customer.email, PASSWORD, admin=True)

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Access denied. Admin credentials required."
    assert api.token is None


def test_client_validation_errors_surface_fields(client: TestClient):
    api = StorefrontClient(http=client)

    with pytest.raises(ClientError) as exc_info:
        api.register("Casey", "casey@example.com", "weak", "0123456789")

    assert exc_info.value.status_code == 422
    assert "password" in exc_info.value.errors


def test_checkout_clears_local_cart_only_on_success(
    client: TestClient, db_session: Session, customer: User, tmp_path
):
    product = create_product(db_session, price="100.00", quantity=5)
    api = StorefrontClient(http=client)
    api.login(customer.email, PASSWORD)

    cart = LocalCart(tmp_path / "cart.json")
    cart.add(api.get_product(product.id), 3)

    # Stock drops after the product was cached locally.
    product.quantity = 1
    db_session.commit()

    with pytest.raises(ClientError) as exc_info:
        cart.checkout(api, "1 Main St", "cash on delivery", Decimal("100.00"))
    assert exc_info.value.status_code == 422
    assert cart.count() == 3

    cart.update_quantity(product.id, 1)
    order = cart.checkout(api, "1 Main St", "cash on delivery", Decimal("100.00"))

    assert order["total"] == "200.00"
    assert cart.count() == 0
    assert api.list_orders()[0]["id"] == order["id"]
    assert api.get_order(order["id"])["status"] == "pending"
    assert db_session.query(Order).count() == 1


def test_admin_client_manages_products_and_status(
    client: TestClient, db_session: Session, customer: User, admin: User
):
    api = StorefrontClient(http=client)
    api.login(admin.email, PASSWORD, admin=True)

    created = api.create_product(
        barcode="CLI-1",
        name="Client Lamp",
        description="Made via client",
        price=Decimal("10.00"),
        quantity=4,
        category="Lighting",
    )
    updated = api.update_product(created["id"], quantity=6)
    assert updated["quantity"] == 6
    assert [p["barcode"] for p in api.list_products(category="Lighting")] == ["CLI-1"]

    shopper = StorefrontClient(http=client)
    shopper.login(customer.email, PASSWORD)
    order = shopper.place_order("1 Main St", "online payment", Decimal("0"), [{"product_id": created["id"], "quantity": 1}])

    assert api.update_order_status(order["id"], "processing")["status"] == "processing"

    api.delete_product(created["id"])
    with pytest.raises(ClientError) as exc_info:
        api.get_product(created["id"])
    assert exc_info.value.status_code == 404


def test_seed_catalog_is_idempotent(client: TestClient, db_session: Session, admin: User):
    api = StorefrontClient(http=client)
    api.login(admin.email, PASSWORD, admin=True)

    first = seed_catalog(api)
    second = seed_catalog(api)

    barcodes = [product["barcode"] for product in SAMPLE_PRODUCTS]
    assert first == {"created": barcodes, "skipped": []}
    assert second == {"created": [], "skipped": barcodes}
    assert db_session.query(Product).count() == len(SAMPLE_PRODUCTS)


def test_seed_catalog_requires_admin(client: TestClient, customer: User):
    api = StorefrontClient(http=client)
    api.login(customer.email, PASSWORD)

    with pytest.raises(ClientError) as exc_info:
        seed_catalog(api)

    assert exc_info.value.status_code == 403
