# postflow/schemas/backoffice_schema.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
import uuid
from datetime import date, datetime
from decimal import Decimal


# admin

class AdminLoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminLoginResponse(BaseModel):
    message: str
    token: str
    admin: dict


class MetricsRead(BaseModel):
    totalUsers: int
    totalLogins: int
    totalPayments: float


class AdminUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: str
    login_count: int
    last_login: Optional[datetime]
    created_at: datetime


class WorkflowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    status: str


class WebsiteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[uuid.UUID]
    domain: str
    type: str
    status: str
    created_at: datetime


class UserList(BaseModel):
    users: List[AdminUserRead]
    total: int


class WorkflowList(BaseModel):
    workflows: List[WorkflowRead]
    total: int


class WebsiteList(BaseModel):
    websites: List[WebsiteRead]
    total: int


# billing

class PaymentMethodCreate(BaseModel):
    type: str = Field(min_length=1, max_length=50)
    last4: Optional[str] = None
    expiry: Optional[str] = Field(default=None, max_length=10)
    email: Optional[EmailStr] = None
    upi_id: Optional[str] = Field(default=None, max_length=255)
    is_default: bool = False


class PaymentMethodRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    last4: Optional[str]
    expiry: Optional[str]
    email: Optional[str]
    upi_id: Optional[str]
    is_default: bool


class SubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: str
    status: str
    next_billing: Optional[date]


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: Decimal
    status: str
    payment_method: Optional[str]
    transaction_id: Optional[str]
    created_at: datetime


# contact

class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=500)
    message: str = Field(min_length=1)

    @field_validator("name", "subject", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()
