# postflow/infrastructure/backoffice_repo.py
from decimal import Decimal
from typing import List, Optional
import uuid

from sqlalchemy import func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models.backoffice import ContactSubmission, Website, Workflow
from ..models.billing import Payment, PaymentMethod, Subscription
from ..UAA.models import LoginLog, User


class AdminRepository:
    """Read-only aggregates and listings for the admin dashboard."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def metrics(self) -> dict:
        total_users = (await self.session.execute(select(func.count()).select_from(User))).scalar_one()
        total_logins = (await self.session.execute(select(func.count()).select_from(LoginLog))).scalar_one()
        total_payments = (
            await self.session.execute(
                select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.status == "completed")
            )
        ).scalar_one()
        return {
            "totalUsers": int(total_users or 0),
            "totalLogins": int(total_logins or 0),
            "totalPayments": float(Decimal(str(total_payments or 0))),
        }

    async def list_users(self) -> List[User]:
        res = await self.session.execute(select(User).order_by(User.created_at.desc()))
        return list(res.scalars().all())

    async def list_workflows(self) -> List[Workflow]:
        res = await self.session.execute(select(Workflow).order_by(Workflow.id.desc()))
        return list(res.scalars().all())

    async def list_websites(self) -> List[Website]:
        res = await self.session.execute(select(Website).order_by(Website.id.desc()))
        return list(res.scalars().all())


class BillingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_payment_methods(self, user_id: uuid.UUID) -> List[PaymentMethod]:
        q = (
            select(PaymentMethod)
            .where(PaymentMethod.user_id == user_id)
            .order_by(PaymentMethod.is_default.desc(), PaymentMethod.id.desc())
        )
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def add_payment_method(
        self,
        user_id: uuid.UUID,
        type: str,
        last4: Optional[str] = None,
        expiry: Optional[str] = None,
        email: Optional[str] = None,
        upi_id: Optional[str] = None,
        is_default: bool = False,
    ) -> PaymentMethod:
        """The first method, or one flagged default, becomes the user's only default."""
        try:
            existing = (
                await self.session.execute(
                    select(func.count()).select_from(PaymentMethod).where(PaymentMethod.user_id == user_id)
                )
            ).scalar_one()
            make_default = is_default or existing == 0
            if make_default:
                await self.session.execute(
                    update(PaymentMethod).where(PaymentMethod.user_id == user_id).values(is_default=False)
                )
            method = PaymentMethod(
                user_id=user_id,
                type=type,
                last4=last4[-4:] if last4 else None,
                expiry=expiry or None,
                email=email.lower() if email else None,
                upi_id=upi_id or None,
                is_default=make_default,
            )
            self.session.add(method)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(method)
        return method

    async def list_subscriptions(self, user_id: uuid.UUID) -> List[Subscription]:
        q = select(Subscription).where(Subscription.user_id == user_id).order_by(Subscription.id.desc())
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def payment_history(self, user_id: uuid.UUID, limit: int = 100) -> List[Payment]:
        q = select(Payment).where(Payment.user_id == user_id).order_by(Payment.id.desc()).limit(limit)
        res = await self.session.execute(q)
        return list(res.scalars().all())


class ContactRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, name: str, email: str, subject: str, message: str) -> ContactSubmission:
        row = ContactSubmission(name=name, email=email, subject=subject, message=message)
        self.session.add(row)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(row)
        return row
