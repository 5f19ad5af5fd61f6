import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from epharmacy import models
from epharmacy.auth import schemas, utils

_logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def validate_new_password(password: str | None) -> None:
    if len(password or "") < utils.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {utils.MIN_PASSWORD_LENGTH} characters long",
        )


def _split_name(payload: schemas.UserRegister) -> tuple[str, str]:
    first_name = (payload.first_name or "").strip()
    last_name = (payload.last_name or "").strip()
    if not first_name and not last_name and payload.name:
        parts = payload.name.strip().split(" ", 1)
        first_name = parts[0].strip()
        last_name = parts[1].strip() if len(parts) > 1 else ""
    return first_name, last_name


def _user_auth_response(user: models.User) -> schemas.AuthResponse:
    token = utils.create_access_token(subject=user.id, email=user.email, role=user.role)
    return schemas.AuthResponse(
        token=token,
        user=schemas.AccountOut(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            # Admins are considered verified.
            is_email_verified=bool(user.is_email_verified) or user.role == models.UserRole.ADMIN,
        ),
    )


def _pharmacy_auth_response(pharmacy: models.Pharmacy) -> schemas.AuthResponse:
    token = utils.create_access_token(subject=pharmacy.id, email=pharmacy.email, role=models.UserRole.PHARMACY)
    return schemas.AuthResponse(
        token=token,
        user=schemas.AccountOut(
            id=pharmacy.id,
            first_name=pharmacy.name,
            last_name="",
            email=pharmacy.email,
            role=models.UserRole.PHARMACY,
            is_email_verified=bool(pharmacy.is_verified),
        ),
    )


def register_user(db: Session, payload: schemas.UserRegister) -> schemas.AuthResponse:
    email = payload.email.lower()
    existing = db.query(models.User).filter(models.User.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    validate_new_password(payload.password)
    first_name, last_name = _split_name(payload)
    if not first_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and name are required")

    user = models.User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        hashed_password=utils.hash_password(payload.password),
        phone=(payload.phone or "").strip() or None,
        address=(payload.address or "").strip() or None,
        date_of_birth=payload.date_of_birth,
        role=models.UserRole.USER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    _logger.info("user registered id=%s email=%s", user.id, user.email)
    return _user_auth_response(user)


def register_pharmacy(db: Session, payload: schemas.PharmacyRegister) -> schemas.AuthResponse:
    email = payload.email.lower()
    license_number = payload.license_number.strip()

    existing = db.query(models.Pharmacy).filter(models.Pharmacy.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Pharmacy with this email already exists")

    existing_license = (
        db.query(models.Pharmacy).filter(models.Pharmacy.license_number == license_number).first()
    )
    if existing_license:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Pharmacy with this license number already exists",
        )

    validate_new_password(payload.password)

    pharmacy = models.Pharmacy(
        name=payload.name.strip(),
        email=email,
        hashed_password=utils.hash_password(payload.password),
        phone=payload.phone.strip(),
        address=payload.address.strip(),
        license_number=license_number,
        is_verified=False,
        is_active=True,
    )
    db.add(pharmacy)
    db.commit()
    db.refresh(pharmacy)

    _logger.info("pharmacy registered id=%s email=%s", pharmacy.id, pharmacy.email)
    return _pharmacy_auth_response(pharmacy)


def login_user(db: Session, credentials: schemas.LoginIn, *, role: str) -> schemas.AuthResponse:
    user = db.query(models.User).filter(models.User.email == credentials.email.lower()).first()
    if not user or user.role != role or not utils.verify_password(credentials.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account has been deactivated")

    _logger.info("login email=%s role=%s", user.email, user.role)
    return _user_auth_response(user)


def login_pharmacy(db: Session, credentials: schemas.LoginIn) -> schemas.AuthResponse:
    pharmacy = db.query(models.Pharmacy).filter(models.Pharmacy.email == credentials.email.lower()).first()
    if not pharmacy or not utils.verify_password(credentials.password, pharmacy.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)
    if not pharmacy.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account has been deactivated")

    _logger.info("login email=%s role=%s", pharmacy.email, models.UserRole.PHARMACY)
    return _pharmacy_auth_response(pharmacy)


def request_password_reset(db: Session, email: str) -> None:
    # The response never reveals whether the address is registered.
    email = email.lower()
    known = (
        db.query(models.User.id).filter(models.User.email == email).first()
        or db.query(models.Pharmacy.id).filter(models.Pharmacy.email == email).first()
    )
    if known:
        _logger.info("password reset requested email=%s", email)
    else:
        _logger.info("password reset requested for unknown email=%s", email)
