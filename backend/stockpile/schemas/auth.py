"""Authentication schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PHONE_PATTERN = r"^\+[1-9]\d{6,14}$"


class RegisterForm(BaseModel):
    """Registration form as posted by clients."""

    email: str | None = None
    password: str | None = None
    phone_number: str | None = None


class UserRegister(BaseModel):
    """Validated registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    phone_number: str | None = Field(None, pattern=PHONE_PATTERN)

    @field_validator("email", "phone_number", mode="before")
    @classmethod
    def strip_blank(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v: str) -> str:
        # bcrypt only looks at the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class LoginForm(BaseModel):
    """User login request."""

    email: str = ""
    password: str = ""


class OtpSendForm(BaseModel):
    phone_number: str | None = None


class OtpSend(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    phone_number: str = Field(..., pattern=PHONE_PATTERN)


class OtpVerifyForm(BaseModel):
    method_id: str | None = None
    code: str | None = None


class OtpVerify(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    method_id: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., pattern=r"^\d{6}$")


class OAuthForm(BaseModel):
    token: str | None = None


class OAuthAuthenticate(BaseModel):
    token: str = Field(..., min_length=1, max_length=1024)


class UserResponse(BaseModel):
    """User info response."""

    id: str
    email: str
    phone_number: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    """Issued session; the token is also set as an HttpOnly cookie."""

    success: bool = True
    user: UserResponse
    session_token: str
    expires_at: datetime


class UserEnvelope(BaseModel):
    success: bool = True
    user: UserResponse


class OtpSendResponse(BaseModel):
    success: bool = True
    method_id: str


class LogoutAllResponse(BaseModel):
    success: bool = True
    revoked: int


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True
