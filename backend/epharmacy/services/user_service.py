import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth import utils
from epharmacy.services.auth_service import validate_new_password

_logger = logging.getLogger(__name__)


def update_profile(db: Session, user: models.User, updates: schemas.UserProfileUpdate) -> models.User:
    data = updates.model_dump(exclude_unset=True)
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        setattr(user, key, value)

    db.commit()
    db.refresh(user)

    _logger.info("profile updated user=%s fields=%s", user.email, sorted(data))
    return user


def change_password(db: Session, user: models.User, payload: schemas.PasswordChangeIn) -> None:
    if not payload.current_password or not payload.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password and new password are required",
        )
    if not utils.verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    validate_new_password(payload.new_password)

    user.hashed_password = utils.hash_password(payload.new_password)
    db.commit()

    _logger.info("password changed user=%s", user.email)


def deactivate_account(db: Session, user: models.User) -> None:
    user.is_active = False
    db.commit()

    _logger.info("account deactivated user=%s", user.email)
