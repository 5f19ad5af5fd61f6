import os
import sys
import tempfile
from pathlib import Path

# Settings are read once at import time; pin them before the app loads.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="epharmacy-test-uploads-")
os.environ["PAYMENT_CARD_SUCCESS_RATE"] = "1"
os.environ["PAYMENT_MOBILE_MONEY_SUCCESS_RATE"] = "1"
os.environ["PAYMENT_SIMULATED_DELAY_SECONDS"] = "0"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the backend package is importable when running tests from repo root
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from epharmacy import models
from epharmacy.auth import utils
from epharmacy.db import Base, get_db
from epharmacy.main import app

API = "/api/v1"
PASSWORD = "secret-password"
PASSWORD_HASH = utils.hash_password(PASSWORD)

SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def create_user(db, *, email: str, role: str = models.UserRole.USER, first_name: str = "Test") -> models.User:
    user = models.User(
        first_name=first_name,
        last_name="User",
        email=email,
        hashed_password=PASSWORD_HASH,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_pharmacy(db, *, email: str = "pharmacy@example.com", verified: bool = True) -> models.Pharmacy:
    pharmacy = models.Pharmacy(
        name="Corner Pharmacy",
        email=email,
        hashed_password=PASSWORD_HASH,
        phone="+15550100",
        address="1 Main Street",
        license_number=f"LIC-{email}",
        is_verified=verified,
    )
    db.add(pharmacy)
    db.commit()
    db.refresh(pharmacy)
    return pharmacy


def create_product(
    db,
    pharmacy: models.Pharmacy,
    *,
    name: str = "Paracetamol",
    price: float = 4.5,
    stock: int = 10,
    requires_prescription: bool = False,
    status: str = models.ProductStatus.ACTIVE,
    category: str = "Pain Relief",
) -> models.Product:
    product = models.Product(
        name=name,
        description=f"{name} tablets",
        price=price,
        stock_quantity=stock,
        category=category,
        requires_prescription=requires_prescription,
        status=status,
        pharmacy_id=pharmacy.id,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def token_for(account) -> str:
    role = models.UserRole.PHARMACY if isinstance(account, models.Pharmacy) else account.role
    return utils.create_access_token(subject=account.id, email=account.email, role=role)


@pytest.fixture
def customer(db) -> models.User:
    return create_user(db, email="customer@example.com")


@pytest.fixture
def customer_headers(customer) -> dict[str, str]:
    return bearer(token_for(customer))


@pytest.fixture
def admin(db) -> models.User:
    return create_user(db, email="admin@example.com", role=models.UserRole.ADMIN, first_name="Admin")


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return bearer(token_for(admin))


@pytest.fixture
def pharmacy(db) -> models.Pharmacy:
    return create_pharmacy(db)


@pytest.fixture
def pharmacy_headers(pharmacy) -> dict[str, str]:
    return bearer(token_for(pharmacy))
