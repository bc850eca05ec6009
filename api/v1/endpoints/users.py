# api/v1/endpoints/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.permissions import get_current_user
from models.user import User
from schemas.common import DataResponse
from schemas.user import ProfileUpdate, UserOut
from services.auth_service import AuthService

router = APIRouter()


@router.get("/profile", response_model=DataResponse)
async def get_profile(user: User = Depends(get_current_user)):
    return DataResponse(data=UserOut.from_user(user).to_wire())


@router.put("/profile", response_model=DataResponse)
async def update_profile(
        data: ProfileUpdate,
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    user = await AuthService(db).update_profile(user, data)
    return DataResponse(message="Profile updated successfully", data=UserOut.from_user(user).to_wire())
