import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import PASSWORD, auth_headers, create_user
from storefront.core.security import decode_token
from storefront.models.user import User, UserRole


def _registration(**overrides) -> dict:
    payload = {
        "name": "Jane Customer",
        "email": "jane@example.com",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
        "contact_number": "(012) 345-6789",
    }
    payload.update(overrides)
    return payload


def _login(client: TestClient, email: str, password: str = PASSWORD, admin: bool = False):
    headers = {"X-Admin-Login": "true"} if admin else {}
    return client.post(
        "/api/v1/login",
        json={"email": email, "password": password},
        headers=headers,
    )


def test_register_success_returns_user_and_token(client: TestClient, db_session: Session):
    response = client.post("/api/v1/register", json=_registration())

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["user"]["email"] == "jane@example.com"
    assert payload["data"]["user"]["role"] == "user"
    assert "password_hash" not in payload["data"]["user"]

    claims = decode_token(payload["data"]["token"])
    assert claims["type"] == "access"
    assert claims["sub"] == str(payload["data"]["user"]["id"])

    stored = db_session.query(User).filter(User.email == "jane@example.com").one()
    assert stored.role == UserRole.USER
    assert stored.password_hash != PASSWORD


def test_register_accepts_form_encoded_body(client: TestClient):
    response = client.post("/api/v1/register", data=_registration())

    assert response.status_code == 201
    assert response.json()["data"]["user"]["name"] == "Jane Customer"


def test_register_rejects_admin_role_before_validation(client: TestClient, db_session: Session):
    response = client.post(
        "/api/v1/register",
        json={"role": "admin", "email": "not-an-email"},
    )

    assert response.status_code == 403
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Admin registration not allowed"
    assert db_session.query(User).count() == 0


@pytest.mark.parametrize("requested_role", ["user", "ADMIN", "superuser"])
def test_register_always_creates_customer(client: TestClient, db_session: Session, requested_role):
    response = client.post("/api/v1/register", json=_registration(role=requested_role))

    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == "user"
    stored = db_session.query(User).filter(User.email == "jane@example.com").one()
    assert stored.role == UserRole.USER


def test_register_reports_every_invalid_field(client: TestClient):
    response = client.post(
        "/api/v1/register",
        json=_registration(
            name="   ",
            email="broken",
            password="weakpass",
            password_confirmation="different",
            contact_number="12ab",
        ),
    )

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert {"name", "email", "password", "contact_number"} <= set(errors)


def test_register_password_rules(client: TestClient):
    short = client.post(
        "/api/v1/register",
        json=_registration(password="Aa1@", password_confirmation="Aa1@"),
    )
    assert short.status_code == 422
    assert short.json()["errors"]["password"] == ["Password must be at least 8 characters"]

    no_symbol = client.post(
        "/api/v1/register",
        json=_registration(password="Password123", password_confirmation="Password123"),
    )
    assert no_symbol.status_code == 422
    assert "special character" in no_symbol.json()["errors"]["password"][0]

    for too_long in ("Aa1@" + "a" * 80, "Aa1@" + "\u00e9" * 40):
        response = client.post(
            "/api/v1/register",
            json=_registration(password=too_long, password_confirmation=too_long),
        )
        assert response.status_code == 422
        assert response.json()["errors"]["password"] == ["Password may not be greater than 72 bytes."]


def test_register_password_confirmation_must_match(client: TestClient):
    response = client.post(
        "/api/v1/register",
        json=_registration(password_confirmation="Secret@124"),
    )

    assert response.status_code == 422
    assert response.json()["errors"]["password_confirmation"] == [
        "The password confirmation does not match."
    ]


def test_register_contact_number_rules(client: TestClient):
    too_short = client.post("/api/v1/register", json=_registration(contact_number="123-456"))
    assert too_short.status_code == 422
    assert "contact_number" in too_short.json()["errors"]

    letters = client.post("/api/v1/register", json=_registration(contact_number="0123456789x"))
    assert letters.status_code == 422
    assert letters.json()["errors"]["contact_number"] == ["Please enter a valid contact number."]

    too_long = client.post("/api/v1/register", json=_registration(contact_number="0" * 31))
    assert too_long.status_code == 422
    assert "contact_number" in too_long.json()["errors"]


def test_register_duplicate_email(client: TestClient, db_session: Session):
    create_user(db_session, email="jane@example.com")

    response = client.post("/api/v1/register", json=_registration())

    assert response.status_code == 422
    assert response.json()["errors"] == {"email": ["The email has already been taken."]}


def test_login_success(client: TestClient, customer: User):
    response = _login(client, customer.email)

    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["user"]["id"] == customer.id
    assert payload["data"]["token"]


def test_login_failure_does_not_reveal_which_field_was_wrong(client: TestClient, customer: User):
    wrong_password = _login(client, customer.email, password="Wrong@1234")
    unknown_email = _login(client, "nobody@example.com")

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json()["message"] == unknown_email.json()["message"] == "Invalid login credentials"


def test_admin_login_requires_admin_role(client: TestClient, customer: User):
    response = _login(client, customer.email, admin=True)

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin credentials required."


def test_admin_login_with_admin_account(client: TestClient, admin: User):
    response = _login(client, admin.email, admin=True)

    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"


def test_logout_revokes_every_issued_token(client: TestClient, customer: User):
    first = _login(client, customer.email).json()["data"]["token"]
    second = _login(client, customer.email).json()["data"]["token"]

    logout = client.post("/api/v1/logout", headers={"Authorization": f"Bearer {first}"})
    assert logout.status_code == 200

    for token in (first, second):
        response = client.get("/api/v1/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token has been revoked"

    fresh = _login(client, customer.email).json()["data"]["token"]
    assert client.get("/api/v1/user", headers={"Authorization": f"Bearer {fresh}"}).status_code == 200


def test_current_user_requires_token(client: TestClient):
    response = client.get("/api/v1/user")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_current_user_rejects_garbage_token(client: TestClient):
    response = client.get("/api/v1/user", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_current_user_returns_profile(client: TestClient, customer: User):
    response = client.get("/api/v1/user", headers=auth_headers(customer))

    assert response.status_code == 200
    assert response.json()["data"]["email"] == customer.email


def test_admin_only_route_rejects_customer(client: TestClient, customer: User):
    response = client.post(
        "/api/v1/products",
        json={
            "barcode": "X-1",
            "name": "Blocked",
            "description": "Nope",
            "price": "1.00",
            "quantity": 1,
            "category": "General",
        },
        headers=auth_headers(customer),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"


def test_error_envelope_shape(client: TestClient):
    response = client.get("/api/v1/products/999")

    assert response.status_code == 404
    payload = response.json()
    assert set(payload) == {"success", "message", "data", "errors", "timestamp"}
    assert payload["success"] is False
    assert payload["data"] is None
    assert payload["timestamp"].endswith("Z")


def test_responses_carry_correlation_and_security_headers(client: TestClient):
    response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Process-Time" in response.headers
