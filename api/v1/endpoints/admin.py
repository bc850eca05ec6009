# api/v1/endpoints/admin.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import UserRole
from core.database import get_db
from core.permissions import require_roles
from models.user import User
from schemas.common import DataResponse
from schemas.file import FileApproval, RepositoryFileOut
from schemas.user import UserOut
from services.repository_service import RepositoryService
from services.user_service import UserService

router = APIRouter()

admin_only = require_roles(UserRole.ADMIN.value)
moderators = require_roles(UserRole.ADMIN.value, UserRole.MODERATOR.value)


@router.get("/users")
async def list_users(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        search: Optional[str] = None,
        approved: Optional[bool] = None,
        admin: User = Depends(admin_only),
        db: AsyncSession = Depends(get_db),
):
    return await UserService(db).list_users(page=page, limit=limit, search=search, approved=approved)


@router.post("/users/{user_id}/approve", response_model=DataResponse)
async def approve_user(user_id: str, admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    user = await UserService(db).set_repository_access(user_id, True, admin)
    return DataResponse(message="User approved for repository access", data=UserOut.from_user(user).to_wire())


@router.post("/users/{user_id}/revoke", response_model=DataResponse)
async def revoke_user(user_id: str, admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    user = await UserService(db).set_repository_access(user_id, False, admin)
    return DataResponse(message="Repository access revoked", data=UserOut.from_user(user).to_wire())


@router.post("/files/{file_id}/approve", response_model=DataResponse)
async def approve_file(
        file_id: str,
        body: Optional[FileApproval] = None,
        moderator: User = Depends(moderators),
        db: AsyncSession = Depends(get_db),
):
    body = body or FileApproval()
    repository_file = await RepositoryService(db).approve_file(
        file_id, moderator, approved=body.approved, notes=body.moderation_notes
    )
    message = "File approved" if body.approved else "File approval withdrawn"
    return DataResponse(message=message, data=RepositoryFileOut.from_file(repository_file).to_wire())
