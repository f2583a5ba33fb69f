"""HTTP client for the storefront API.

Used by the seeding script and by anything that plays the role of the
shop front end: it keeps the bearer token and the signed-in user, and turns
every non-2xx response into a ``ClientError``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/api/v1"
ADMIN_LOGIN_HEADER = "X-Admin-Login"


class ClientError(RuntimeError):
    def __init__(self, status_code: int, message: str, errors: Any = None):
        super().__init__(f"{message} ({status_code})")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _require_success(response: httpx.Response) -> Dict[str, Any]:
    payload = _json_or_text(response)
    if not isinstance(payload, dict):
        raise ClientError(response.status_code, f"Non-JSON payload: {payload}")
    if response.status_code >= 400 or payload.get("success") is False:
        raise ClientError(
            response.status_code,
            payload.get("message", "Request failed"),
            payload.get("errors"),
        )
    return payload


class StorefrontClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        http: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "StorefrontClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        response = self._http.request(
            method,
            f"{API_PREFIX}{path}",
            json=json,
            params=params,
            headers=self._headers(headers),
        )
        return _require_success(response).get("data")

    # Authentication

    def register(
        self,
        name: str,
        email: str,
        password: str,
        contact_number: str,
        password_confirmation: Optional[str] = None,
    ) -> Dict[str, Any]:
        data = self._request(
            "POST",
            "/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "password_confirmation": password_confirmation or password,
                "contact_number": contact_number,
            },
        )
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def login(self, email: str, password: str, *, admin: bool = False) -> Dict[str, Any]:
        headers = {ADMIN_LOGIN_HEADER: "true"} if admin else None
        data = self._request(
            "POST",
            "/login",
            json={"email": email, "password": password},
            headers=headers,
        )
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def logout(self) -> None:
        try:
            self._request("POST", "/logout")
        finally:
            self.token = None
            self.user = None

    def current_user(self) -> Dict[str, Any]:
        return self._request("GET", "/user")

    # Catalog

    def list_products(self, **filters: Any) -> List[Dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self._request("GET", "/products", params=params)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def create_product(self, **fields: Any) -> Dict[str, Any]:
        return self._request("POST", "/products", json=_jsonable(fields))

    def update_product(self, product_id: int, **fields: Any) -> Dict[str, Any]:
        return self._request("PUT", f"/products/{product_id}", json=_jsonable(fields))

    def delete_product(self, product_id: int) -> None:
        self._request("DELETE", f"/products/{product_id}")

    # Orders

    def place_order(
        self,
        shipping_address: str,
        payment_method: str,
        shipping_fee: Decimal,
        cart_items: List[Dict[str, int]],
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/orders",
            json={
                "shipping_address": shipping_address,
                "payment_method": payment_method,
                "shipping_fee": str(shipping_fee),
                "cart_items": cart_items,
            },
        )

    def list_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/orders")

    def get_order(self, order_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/orders/{order_id}")

    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        return self._request("PUT", f"/orders/{order_id}/status", json={"status": status})


def _jsonable(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: str(value) if isinstance(value, Decimal) else value for key, value in fields.items()}
