"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from worldleader.db.models import Continent


class RegisterRequest(BaseModel):
    """Register with email + password and pick a continent to compete in."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_-]+$")
    password: str = Field(..., min_length=1, max_length=128)
    continent: Continent
    country_code: str = Field(..., alias="countryCode", min_length=2, max_length=2)

    @field_validator("country_code")
    @classmethod
    def country_code_letters(cls, v: str) -> str:
        if not v.isalpha():
            msg = "Country code must be two letters"
            raise ValueError(msg)
        return v.upper()


class LoginRequest(BaseModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=128)


class AuthUser(BaseModel):
    """The caller as returned by register and login."""

    id: int
    email: str
    username: str
    continent: Continent
    country_code: str
    current_continent_rank: int
    current_global_rank: int
    total_positions_purchased: int


class AuthResponse(BaseModel):
    success: bool = True
    user: AuthUser
    access_token: str
    token_type: str = "bearer"


class ResetTokenStatus(BaseModel):
    valid: bool
