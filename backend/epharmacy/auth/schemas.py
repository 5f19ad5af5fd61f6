from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    first_name: str | None = None
    last_name: str | None = None
    name: str | None = None  # "First Last", used when first/last are omitted
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None


class PharmacyRegister(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    license_number: str = Field(min_length=1)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class AccountOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    role: str
    is_email_verified: bool


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: AccountOut


class PrincipalOut(BaseModel):
    id: int
    email: EmailStr
    role: str
    name: str

    model_config = ConfigDict(from_attributes=True)
