import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.exceptions import AdminCredentialsRequired, EmailAlreadyRegistered, InvalidCredentials
from storefront.core.security import create_access_token, hash_password, verify_password
from storefront.models.user import User, UserRole
from storefront.schemas.user import UserCreate, UserLogin

logger = structlog.get_logger()


def issue_token(user: User) -> str:
    return create_access_token(
        data={
            "sub": str(user.id),
            "role": user.role.value,
            "session_version": user.session_version,
        }
    )


def register_customer(db: Session, user_in: UserCreate) -> User:
    """Create a customer account. The role is never taken from the request."""
    if db.query(User.id).filter(User.email == user_in.email).first() is not None:
        raise EmailAlreadyRegistered()

    user = User(
        name=user_in.name,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        contact_number=user_in.contact_number,
        role=UserRole.USER,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise EmailAlreadyRegistered() from exc
    db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return user


def authenticate(db: Session, credentials: UserLogin, admin_login: bool = False) -> User:
    user = db.query(User).filter(User.email == credentials.email).first()

    # Same error for unknown email and wrong password.
    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.info("login_failed", email=credentials.email)
        raise InvalidCredentials()

    if admin_login and not user.is_admin:
        logger.warning("admin_login_rejected", user_id=user.id)
        raise AdminCredentialsRequired()

    logger.info("login_succeeded", user_id=user.id, role=user.role.value)
    return user


def revoke_sessions(db: Session, user: User) -> None:
    user.session_version += 1
    db.commit()
    logger.info("sessions_revoked", user_id=user.id, session_version=user.session_version)
