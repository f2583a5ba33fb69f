import os
import tempfile
from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

os.environ["ENVIRONMENT"] = "development"

from storefront.db.base import Base  # noqa: E402
from storefront.db.session import enable_sqlite_foreign_keys, get_db  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.core.security import create_access_token, hash_password  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.user import User, UserRole  # noqa: E402

PASSWORD = "Secret@123"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()

    test_engine = create_engine(
        f"sqlite:///{db_file.name}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()
        os.unlink(db_file.name)


@pytest.fixture()
def db_session(engine: Engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_user(
    db: Session,
    email: str = "customer@example.com",
    role: UserRole = UserRole.USER,
    password: str = PASSWORD,
) -> User:
    user = User(
        name="Test " + role.value.title(),
        email=email,
        password_hash=hash_password(password),
        contact_number="0123456789",
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_product(
    db: Session,
    barcode: str = "BC-001",
    name: str = "Widget",
    price: str = "100.00",
    quantity: int = 5,
    category: str = "General",
) -> Product:
    product = Product(
        barcode=barcode,
        name=name,
        description=f"{name} description",
        price=Decimal(price),
        quantity=quantity,
        category=category,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def auth_headers(user: User) -> dict:
    token = create_access_token(
        data={
            "sub": str(user.id),
            "role": user.role.value,
            "session_version": user.session_version,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def customer(db_session: Session) -> User:
    return create_user(db_session)


@pytest.fixture()
def admin(db_session: Session) -> User:
    return create_user(db_session, email="admin@example.com", role=UserRole.ADMIN)
