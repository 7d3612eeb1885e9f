"""
Auth-specific Pydantic schemas for request and response models.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator


class AuthErrorCode(str, Enum):
    EMAIL_TAKEN = "EMAIL_TAKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    WEAK_PASSWORD = "WEAK_PASSWORD"


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1)
    referral_code: str | None = Field(None, max_length=20)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class AuthResponse(BaseModel):
    """Schema for successful register and login responses."""

    success: bool = True
    message: str
    token: str
    user: dict[str, Any]


class AuthErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: AuthErrorCode


class CurrentUserResponse(BaseModel):
    success: bool = True
    user: dict[str, Any]
