from sqlalchemy.orm import Session
import structlog
from storefront.models.user import User, UserRole
from storefront.core.config import settings
from storefront.core.security import hash_password

logger = structlog.get_logger()


def init_db(db: Session) -> None:
    """Seed the administrator account (idempotent)."""

    admin = db.query(User).filter(User.email == settings.DEFAULT_ADMIN_EMAIL).first()
    if admin:
        logger.info("admin_user_exists", email=settings.DEFAULT_ADMIN_EMAIL)
        return

    seed_password = (settings.DEFAULT_ADMIN_PASSWORD or "").strip()
    if not seed_password:
        message = (
            "Missing admin bootstrap credentials: set DEFAULT_ADMIN_PASSWORD "
            "or create an admin user manually before launch."
        )
        if settings.ENVIRONMENT == "production":
            logger.error("admin_bootstrap_failed", reason=message, env=settings.ENVIRONMENT)
            raise RuntimeError(message)
        logger.warning("admin_bootstrap_skipped", reason=message, env=settings.ENVIRONMENT)
        return

    admin = User(
        name=settings.DEFAULT_ADMIN_NAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password_hash=hash_password(seed_password),
        contact_number=settings.DEFAULT_ADMIN_CONTACT_NUMBER,
        role=UserRole.ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.info("admin_user_created", email=settings.DEFAULT_ADMIN_EMAIL)


if __name__ == "__main__":
    from storefront.core.logging_config import configure_logging
    from storefront.db.session import SessionLocal

    configure_logging()
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
