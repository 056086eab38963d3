# postflow/models/billing.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
import uuid
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import Numeric, String

from .base import UTCDateTime, utcnow


class Payment(SQLModel, table=True):
    """Payment rows are inserted by operators; there is no gateway integration."""

    __tablename__ = "payments"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="CASCADE", index=True)
    amount: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    status: str = Field(default="pending", max_length=50)
    payment_method: Optional[str] = Field(default=None, max_length=100)
    transaction_id: Optional[str] = Field(default=None, sa_column=Column(String(255), unique=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PaymentMethod(SQLModel, table=True):
    __tablename__ = "payment_methods"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    type: str = Field(max_length=50)
    last4: Optional[str] = Field(default=None, max_length=4)
    expiry: Optional[str] = Field(default=None, max_length=10)
    email: Optional[str] = Field(default=None, max_length=255)
    upi_id: Optional[str] = Field(default=None, max_length=255)
    is_default: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Subscription(SQLModel, table=True):
    __tablename__ = "subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    name: str = Field(max_length=255)
    price: str = Field(max_length=50)
    status: str = Field(default="active", max_length=50)
    next_billing: Optional[date] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
