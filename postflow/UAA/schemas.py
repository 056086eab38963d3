# postflow/UAA/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
import uuid
from datetime import datetime


class SignupRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: EmailStr
    signup_type: str
    email_verified: bool
    sms_verified: bool
    verified: bool
    is_active: bool
    login_count: int
    last_login: Optional[datetime]
    created_at: datetime


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: int


class LoginResponse(Token):
    message: str
    user: UserRead


class SignupResponse(BaseModel):
    message: str
    user: UserRead


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    verification_code: str = Field(min_length=1, max_length=10)
    new_password: str
    confirm_password: str
