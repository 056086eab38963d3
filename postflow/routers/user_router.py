# postflow/routers/user_router.py
from fastapi import APIRouter, Depends
from ..dependencies.auth import get_current_user
from ..UAA.models import User
from ..UAA.schemas import UserRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
