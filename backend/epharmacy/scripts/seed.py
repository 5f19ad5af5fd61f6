"""Seed a development database with an admin, sample users, a pharmacy and products.

Usage (from ``backend/``)::

    python -m epharmacy.scripts.seed --admin-password secret123

Existing accounts are matched by email and left untouched, so the script can
be run repeatedly.
"""

import argparse
import logging

from sqlalchemy.orm import Session

from epharmacy import models
from epharmacy.auth.utils import hash_password
from epharmacy.db import Base, SessionLocal, engine

_logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    ("John", "Doe", "john.doe@example.com"),
    ("Jane", "Smith", "jane.smith@example.com"),
]

SAMPLE_PHARMACY = {
    "name": "HealthPlus Pharmacy",
    "email": "contact@healthplus.example.com",
    "phone": "+1234567890",
    "address": "123 Main Street, City Center",
    "license_number": "PH-2024-001",
}

SAMPLE_PRODUCTS = [
    ("Paracetamol 500mg", "Pain reliever and fever reducer", 5.99, 100, "Pain Relief", False),
    ("Amoxicillin 250mg", "Antibiotic for bacterial infections", 12.50, 50, "Antibiotics", True),
    ("Vitamin C 1000mg", "Immune system support supplement", 8.75, 200, "Vitamins", False),
    ("Digital Thermometer", "Fast and accurate temperature reading", 15.00, 30, "Medical Devices", False),
    ("Metformin 500mg", "Blood sugar control for type 2 diabetes", 9.25, 80, "Diabetes", True),
]


def _seed_admin(db: Session, email: str, password: str) -> None:
    if db.query(models.User).filter(models.User.email == email).first():
        return
    db.add(
        models.User(
            first_name="Admin",
            last_name="User",
            email=email,
            hashed_password=hash_password(password),
            role=models.UserRole.ADMIN,
            is_email_verified=True,
        )
    )
    _logger.info("seeded admin email=%s", email)


def _seed_users(db: Session, password: str) -> None:
    for first_name, last_name, email in SAMPLE_USERS:
        if db.query(models.User).filter(models.User.email == email).first():
            continue
        db.add(
            models.User(
                first_name=first_name,
                last_name=last_name,
                email=email,
                hashed_password=hash_password(password),
                role=models.UserRole.USER,
                is_email_verified=True,
            )
        )
        _logger.info("seeded user email=%s", email)


def _seed_pharmacy(db: Session, password: str) -> models.Pharmacy:
    pharmacy = db.query(models.Pharmacy).filter(models.Pharmacy.email == SAMPLE_PHARMACY["email"]).first()
    if pharmacy:
        return pharmacy

    pharmacy = models.Pharmacy(
        **SAMPLE_PHARMACY,
        hashed_password=hash_password(password),
        is_verified=True,
        is_active=True,
    )
    db.add(pharmacy)
    db.flush()

    for name, description, price, stock, category, requires_prescription in SAMPLE_PRODUCTS:
        db.add(
            models.Product(
                name=name,
                description=description,
                price=price,
                stock_quantity=stock,
                category=category,
                requires_prescription=requires_prescription,
                status=models.ProductStatus.ACTIVE,
                pharmacy_id=pharmacy.id,
            )
        )
    _logger.info("seeded pharmacy email=%s products=%s", pharmacy.email, len(SAMPLE_PRODUCTS))
    return pharmacy


def seed(db: Session, *, admin_email: str, admin_password: str, sample_password: str) -> None:
    _seed_admin(db, admin_email, admin_password)
    _seed_users(db, sample_password)
    _seed_pharmacy(db, sample_password)
    db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the EPharmacy database with sample data")
    parser.add_argument("--admin-email", default="admin@epharmacy.example.com")
    parser.add_argument("--admin-password", default="admin123")
    parser.add_argument("--sample-password", default="password123")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed(
            db,
            admin_email=args.admin_email.strip().lower(),
            admin_password=args.admin_password,
            sample_password=args.sample_password,
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
