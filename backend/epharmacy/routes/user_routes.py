from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_user
from epharmacy.db import get_db
from epharmacy.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=schemas.UserProfile)
def get_profile(current_user: models.User = Depends(require_user)):
    return current_user


@router.put("/profile", response_model=schemas.UserProfile)
def update_profile(
    payload: schemas.UserProfileUpdate,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return user_service.update_profile(db, current_user, payload)


@router.post("/change-password")
def change_password(
    payload: schemas.PasswordChangeIn,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    user_service.change_password(db, current_user, payload)
    return {"message": "Password changed successfully"}


@router.post("/deactivate")
def deactivate_account(
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    user_service.deactivate_account(db, current_user)
    return {"message": "Account deactivated successfully"}
