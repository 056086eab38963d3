# postflow/UAA/models.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
import uuid
from sqlalchemy import String, Text

from ..models.base import UTCDateTime, utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    full_name: str = Field(max_length=255)
    # always stored lower-case, so equality is case-insensitive
    email: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    hashed_password: str = Field(max_length=255)
    signup_type: str = Field(default="normal", max_length=50)
    email_verified: bool = Field(default=False)
    sms_verified: bool = Field(default=False)
    verified: bool = Field(default=False)
    is_active: bool = Field(default=True)
    login_count: int = Field(default=0)
    last_login: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class LoginLog(SQLModel, table=True):
    __tablename__ = "login_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    login_time: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, sa_column=Column(Text))


class PasswordReset(SQLModel, table=True):
    __tablename__ = "password_resets"

    # integer id gives insertion order; only the newest code per email is honoured
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, index=True)
    token: str = Field(max_length=10)
    expires_at: datetime = Field(sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
