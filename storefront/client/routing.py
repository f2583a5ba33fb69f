"""Single routing policy deciding which view a visitor may see."""

from __future__ import annotations

import enum
import re
from typing import Any, Dict, Optional


class Role(str, enum.Enum):
    CUSTOMER = "user"
    ADMIN = "admin"


CUSTOMER_HOME = "/"
ADMIN_HOME = "/admin/products"
LOGIN_VIEW = "/login"

PUBLIC_VIEWS = frozenset({"/", "/login", "/admin/login", "/register"})
CUSTOMER_VIEWS = frozenset({"/cart", "/checkout", "/order-confirmation", "/orders"})
ADMIN_VIEWS = frozenset({"/admin/products", "/admin/products/create"})
ADMIN_VIEW_PATTERNS = (re.compile(r"^/admin/products/edit/\d+$"),)


def role_of(user: Optional[Dict[str, Any]]) -> Optional[Role]:
    """Map the user payload returned by the API to a role; None means signed out."""
    if not user:
        return None
    return Role(user["role"])


def home_for(role: Optional[Role]) -> str:
    return ADMIN_HOME if role is Role.ADMIN else CUSTOMER_HOME


def _is_admin_view(path: str) -> bool:
    return path in ADMIN_VIEWS or any(pattern.match(path) for pattern in ADMIN_VIEW_PATTERNS)


def resolve_view(role: Optional[Role], path: str) -> str:
    """Return ``path`` when ``role`` may see it, otherwise the view to redirect to."""
    path = path.rstrip("/") or "/"

    if path in PUBLIC_VIEWS:
        if role is Role.ADMIN and path == CUSTOMER_HOME:
            return ADMIN_HOME
        return path

    if _is_admin_view(path):
        if role is None:
            return LOGIN_VIEW
        return path if role is Role.ADMIN else CUSTOMER_HOME

    if path in CUSTOMER_VIEWS:
        if role is None:
            return LOGIN_VIEW
        return ADMIN_HOME if role is Role.ADMIN else path

    return home_for(role)
