from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from epharmacy import models
from epharmacy.auth import schemas
from epharmacy.auth.deps import Principal, get_current_principal
from epharmacy.db import get_db
from epharmacy.services import auth_service

router = APIRouter()


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserRegister, db: Session = Depends(get_db)):
    return auth_service.register_user(db, payload)


@router.post("/pharmacy/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register_pharmacy(payload: schemas.PharmacyRegister, db: Session = Depends(get_db)):
    return auth_service.register_pharmacy(db, payload)


@router.post("/login", response_model=schemas.AuthResponse)
def login(credentials: schemas.LoginIn, db: Session = Depends(get_db)):
    return auth_service.login_user(db, credentials, role=models.UserRole.USER)


@router.post("/admin/login", response_model=schemas.AuthResponse)
def admin_login(credentials: schemas.LoginIn, db: Session = Depends(get_db)):
    return auth_service.login_user(db, credentials, role=models.UserRole.ADMIN)


@router.post("/pharmacy/login", response_model=schemas.AuthResponse)
def pharmacy_login(credentials: schemas.LoginIn, db: Session = Depends(get_db)):
    return auth_service.login_pharmacy(db, credentials)


@router.post("/forgot-password")
def forgot_password(payload: schemas.ForgotPasswordIn, db: Session = Depends(get_db)):
    auth_service.request_password_reset(db, payload.email)
    return {"message": "If the email is registered, password reset instructions have been sent"}


@router.get("/me", response_model=schemas.PrincipalOut)
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    if principal.role == models.UserRole.PHARMACY:
        pharmacy = db.query(models.Pharmacy).filter(models.Pharmacy.id == principal.id).first()
        if pharmacy is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
        return schemas.PrincipalOut(id=pharmacy.id, email=pharmacy.email, role=principal.role, name=pharmacy.name)

    user = db.query(models.User).filter(models.User.id == principal.id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return schemas.PrincipalOut(id=user.id, email=user.email, role=user.role, name=user.full_name)
