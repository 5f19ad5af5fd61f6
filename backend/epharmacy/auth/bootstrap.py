import logging
import os

from sqlalchemy.orm import Session

from epharmacy import models
from epharmacy.auth.utils import hash_password
from epharmacy.db import SessionLocal

_logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session | None = None) -> bool:
    """
    One-time bootstrap for an initial admin account.

    Set ADMIN_EMAIL / ADMIN_PASSWORD (optionally ADMIN_FIRST_NAME / ADMIN_LAST_NAME).
    Nothing happens once any admin exists.
    """

    email = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
    password = os.getenv("ADMIN_PASSWORD")
    first_name = os.getenv("ADMIN_FIRST_NAME") or "Admin"
    last_name = os.getenv("ADMIN_LAST_NAME") or "User"

    if not email or not password:
        return False

    owns_session = db is None
    session = db or SessionLocal()
    try:
        existing_admin = (
            session.query(models.User).filter(models.User.role == models.UserRole.ADMIN).first()
        )
        if existing_admin:
            return False

        existing_user = session.query(models.User).filter(models.User.email == email).first()
        if existing_user:
            existing_user.role = models.UserRole.ADMIN
            existing_user.is_active = True
            existing_user.hashed_password = hash_password(password)
            session.commit()
            _logger.info("promoted existing user to admin email=%s", email)
            return True

        user = models.User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            hashed_password=hash_password(password),
            role=models.UserRole.ADMIN,
            is_active=True,
            is_email_verified=True,
        )
        session.add(user)
        session.commit()
        _logger.info("bootstrapped admin email=%s", email)
        return True
    finally:
        if owns_session:
            session.close()
