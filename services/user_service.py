# services/user_service.py
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from schemas.user import UserOut
from utils.pagination import build_pagination

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(
            self,
            page: int = 1,
            limit: int = 20,
            search: Optional[str] = None,
            approved: Optional[bool] = None,
    ) -> Dict[str, Any]:
        conditions = []
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.matric_number.ilike(pattern),
            ))
        if approved is not None:
            conditions.append(User.is_approved.is_(approved))

        total = (await self.db.execute(
            select(func.count(User.id)).where(*conditions)
        )).scalar_one()

        result = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        return {
            "success": True,
            "data": [UserOut.from_user(u).to_wire() for u in result.scalars().all()],
            "pagination": build_pagination(page, limit, total).to_wire(),
        }

    async def get_user(self, user_uuid: str) -> User:
        result = await self.db.execute(select(User).where(User.uuid == user_uuid))
        user = result.scalar_one_or_none()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    async def set_repository_access(self, user_uuid: str, allowed: bool, admin: User) -> User:
        user = await self.get_user(user_uuid)

        user.is_approved = allowed
        user.can_access_repository = allowed
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            f"Repository access {'granted to' if allowed else 'revoked from'} {user.email} by {admin.email}"
        )
        return user
