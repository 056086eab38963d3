# postflow/routers/billing_router.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from ..dependencies.auth import get_current_user
from ..dependencies.db import get_session_dep
from ..infrastructure.backoffice_repo import BillingRepository
from ..schemas.backoffice_schema import PaymentMethodCreate, PaymentMethodRead, PaymentRead, SubscriptionRead
from ..UAA.models import User

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/billing", tags=["billing"])


@router.get("/payment-methods", response_model=List[PaymentMethodRead])
async def list_payment_methods(
    session: AsyncSession = Depends(get_session_dep), current_user: User = Depends(get_current_user)
):
    return await BillingRepository(session).list_payment_methods(current_user.id)


@router.post("/payment-methods", response_model=PaymentMethodRead, status_code=status.HTTP_201_CREATED)
async def add_payment_method(
    body: PaymentMethodCreate,
    session: AsyncSession = Depends(get_session_dep),
    current_user: User = Depends(get_current_user),
):
    method = await BillingRepository(session).add_payment_method(current_user.id, **body.model_dump())
    logger.info("payment_method_added", user_id=str(current_user.id), method_id=method.id, default=method.is_default)
    return method


@router.get("/subscriptions", response_model=List[SubscriptionRead])
async def list_subscriptions(
    session: AsyncSession = Depends(get_session_dep), current_user: User = Depends(get_current_user)
):
    return await BillingRepository(session).list_subscriptions(current_user.id)


@router.get("/payment-history", response_model=List[PaymentRead])
async def payment_history(
    session: AsyncSession = Depends(get_session_dep), current_user: User = Depends(get_current_user)
):
    return await BillingRepository(session).payment_history(current_user.id)
