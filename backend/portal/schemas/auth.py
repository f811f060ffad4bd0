"""Registration, login and password reset contracts."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from portal.schemas.user import ProfileResponse


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    token: str = Field(description="Session token; also set as the session cookie")
    user: ProfileResponse


class ResetPasswordRequest(BaseModel):
    email: EmailStr
