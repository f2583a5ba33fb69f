from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.core.exceptions import AdminRegistrationForbidden
from storefront.core.rate_limiter import limiter
from storefront.db.session import get_db
from storefront.models.user import User, UserRole
from storefront.schemas.user import UserCreate, UserLogin, UserResponse
from storefront.services import account_service
from storefront.utils.response import success

router = APIRouter()
logger = structlog.get_logger()

ADMIN_LOGIN_HEADER = "X-Admin-Login"


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Accept the same fields as JSON or as an HTML form post."""
    if "application/json" in request.headers.get("content-type", ""):
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body")
    else:
        payload = dict(await request.form())

    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be an object")
    return payload


def _session(user: User) -> Dict[str, Any]:
    return {
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
        "token": account_service.issue_token(user),
    }


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer account",
    description="""
Creates a customer account and returns it together with a bearer token.

A request asking for the `admin` role is refused with 403 before any other
validation runs. Every other failing field is reported in one 422 response.
""",
    responses={
        403: {"description": "Admin registration not allowed"},
        422: {"description": "Validation error or email already taken"},
    },
)
@limiter.limit("10/minute")
async def register(request: Request, db: Session = Depends(get_db)):
    payload = await _read_payload(request)

    if payload.get("role") == UserRole.ADMIN.value:
        logger.warning("admin_registration_rejected", email=payload.get("email"))
        raise AdminRegistrationForbidden()

    user = account_service.register_customer(db, UserCreate(**payload))
    return success(data=_session(user), message="Registration successful")


@router.post(
    "/login",
    response_model=dict,
    summary="Log in",
    description="""
Exchanges email and password for a bearer token.

Send `X-Admin-Login: true` from the admin console: the account must then hold
the admin role, otherwise the login is refused with 403 even when the
password is correct.
""",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Admin credentials required"},
    },
)
@limiter.limit("10/minute")
async def login(request: Request, db: Session = Depends(get_db)):
    payload = await _read_payload(request)
    admin_login = request.headers.get(ADMIN_LOGIN_HEADER, "").strip().lower() == "true"

    user = account_service.authenticate(db, UserLogin(**payload), admin_login=admin_login)
    return success(data=_session(user), message="Login successful")


@router.post("/logout", response_model=dict)
def logout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Revoke every token issued to the calling user."""
    account_service.revoke_sessions(db, current_user)
    return success(message="Successfully logged out")


@router.get("/user", response_model=dict)
def get_me(current_user: User = Depends(get_current_user)):
    return success(
        data=UserResponse.model_validate(current_user).model_dump(mode="json"),
        message="User retrieved",
    )
