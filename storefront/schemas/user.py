from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator
from datetime import datetime
import re

from storefront.core.security import MAX_PASSWORD_BYTES
from storefront.models.user import UserRole

PASSWORD_SYMBOLS = "@$!%*?&"
PASSWORD_RE = re.compile(r"^(?=.*[A-Z])(?=.*[a-z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$")
CONTACT_NUMBER_RE = re.compile(r"^[0-9\s\-+()]*$")


class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    contact_number: str = Field(..., max_length=30)


class UserCreate(UserBase):
    password: str
    password_confirmation: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("The name field is required.")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password may not be greater than {MAX_PASSWORD_BYTES} bytes.")
        if not PASSWORD_RE.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, "
                f"one number and one special character ({PASSWORD_SYMBOLS})."
            )
        return v

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v):
        if not CONTACT_NUMBER_RE.match(v):
            raise ValueError("Please enter a valid contact number.")
        if len(v) < 10:
            raise ValueError("Contact number must be at least 10 characters")
        return v

    @field_validator("password_confirmation")
    @classmethod
    def validate_confirmation(cls, v, info: ValidationInfo):
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("The password confirmation does not match.")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(UserBase):
    id: int
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True
