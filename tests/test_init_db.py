import pytest
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.security import verify_password
from storefront.db.init_db import init_db
from storefront.models.user import User, UserRole


def test_init_db_creates_admin_once(db_session: Session, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_ADMIN_PASSWORD", "Admin@12345")

    init_db(db_session)
    init_db(db_session)

    admins = db_session.query(User).filter(User.role == UserRole.ADMIN).all()
    assert len(admins) == 1
    assert admins[0].email == settings.DEFAULT_ADMIN_EMAIL
    assert verify_password("Admin@12345", admins[0].password_hash)


def test_init_db_skips_without_password_outside_production(db_session: Session, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_ADMIN_PASSWORD", "")

    init_db(db_session)

    assert db_session.query(User).count() == 0


def test_init_db_fails_in_production_without_password(db_session: Session, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_ADMIN_PASSWORD", "")
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    with pytest.raises(RuntimeError):
        init_db(db_session)
