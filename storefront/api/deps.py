from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from storefront.core.security import ACCESS_TOKEN_TYPE, decode_token
from storefront.db.session import get_db
from storefront.models.user import User

logger = structlog.get_logger()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def _claimed_session_version(payload: dict) -> int:
    try:
        return int(payload.get("session_version", 0))
    except (TypeError, ValueError):
        return -1


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the bearer token to a user; tokens older than the last logout are refused."""
    token = _bearer_token(request)
    if not token:
        raise _unauthorized("Not authenticated")

    payload = decode_token(token)
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    subject = payload.get("sub")
    user = db.query(User).filter(User.id == int(subject)).first() if str(subject).isdigit() else None
    if user is None:
        raise _unauthorized("Invalid authentication credentials")

    if _claimed_session_version(payload) != user.session_version:
        raise _unauthorized("Token has been revoked")

    return user


def require_admin(request: Request, current_user: User = Depends(get_current_user)) -> User:
    action = f"{request.method} {request.url.path}"
    if not current_user.is_admin:
        logger.warning("admin_access_denied", action=action, user_id=current_user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    logger.info("admin_action", action=action, admin_user_id=current_user.id)
    return current_user
