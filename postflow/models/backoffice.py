# postflow/models/backoffice.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
import uuid
from datetime import datetime
from sqlalchemy import Text

from .base import UTCDateTime, utcnow


class Workflow(SQLModel, table=True):
    __tablename__ = "workflows"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="CASCADE", index=True)
    status: str = Field(default="active", max_length=50)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Website(SQLModel, table=True):
    __tablename__ = "websites"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="CASCADE", index=True)
    domain: str = Field(max_length=255)
    type: str = Field(default="WordPress", max_length=100)
    status: str = Field(default="active", max_length=50)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ContactSubmission(SQLModel, table=True):
    __tablename__ = "contact_submissions"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, index=True)
    subject: str = Field(max_length=500)
    message: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
