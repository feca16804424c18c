"""Schemas for authentication endpoints."""

from pydantic import BaseModel, Field, constr, field_validator

from huddle.schemas.users import UserRead

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserCreate(BaseModel):
    """Payload for creating a new user via registration."""

    email: constr(strip_whitespace=True, max_length=255, pattern=EMAIL_PATTERN) = Field(
        ..., description="Unique e-mail address used to sign in"
    )
    password: constr(min_length=8, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )
    name: constr(strip_whitespace=True, min_length=1, max_length=128) = Field(
        ..., description="Display name shown to other users"
    )

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: constr(strip_whitespace=True, max_length=255) = Field(..., description="User e-mail")
    password: constr(min_length=1, max_length=128) = Field(..., description="User password")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    user: UserRead
