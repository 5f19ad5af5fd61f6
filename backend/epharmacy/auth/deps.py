from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from epharmacy import models
from epharmacy.auth.utils import decode_access_token
from epharmacy.config.settings import get_settings
from epharmacy.db import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{get_settings().api_prefix}/auth/login")


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: str


def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        return Principal(id=int(payload["sub"]), email=str(payload.get("email") or ""), role=str(payload["role"]))
    except (JWTError, ValueError):
        raise credentials_exception


def _require_role(principal: Principal, role: str) -> None:
    if principal.role != role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


def _load_active_user(db: Session, principal: Principal) -> models.User:
    user = db.query(models.User).filter(models.User.id == principal.id).first()
    if user is None or user.role != principal.role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account has been deactivated")
    return user


def require_user(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> models.User:
    _require_role(principal, models.UserRole.USER)
    return _load_active_user(db, principal)


def require_admin(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> models.User:
    _require_role(principal, models.UserRole.ADMIN)
    return _load_active_user(db, principal)


def require_pharmacy(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> models.Pharmacy:
    _require_role(principal, models.UserRole.PHARMACY)
    pharmacy = db.query(models.Pharmacy).filter(models.Pharmacy.id == principal.id).first()
    if pharmacy is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account not found")
    if not pharmacy.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account has been deactivated")
    return pharmacy
