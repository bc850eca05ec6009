# core/permissions.py
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import decode_token, oauth2_scheme
from models.user import User

logger = logging.getLogger(__name__)

REPOSITORY_ACCESS_DENIED = (
    "You are not approved to access the repository. Please contact an administrator."
)
PROFILE_INCOMPLETE = (
    "Please complete your profile information (department, level, semester, phone, address) "
    "before making changes to the repository."
)


async def get_current_user(
        token: str = Depends(oauth2_scheme),
        db: AsyncSession = Depends(get_db),
) -> User:
    user_id = decode_token(token)

    result = await db.execute(select(User).where(User.uuid == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
        )

    return user


def require_roles(*roles_allowed):
    async def wrapper(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles_allowed:
            logger.warning(f"Role {user.role} denied for {user.email}; needs one of {roles_allowed}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
        return user
    return wrapper


async def require_repository_access(user: User = Depends(get_current_user)) -> User:
    if not (user.is_approved and user.can_access_repository):
        logger.warning(f"Repository access denied for {user.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=REPOSITORY_ACCESS_DENIED)
    return user


async def require_complete_profile(user: User = Depends(require_repository_access)) -> User:
    if not user.is_profile_complete:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=PROFILE_INCOMPLETE)
    return user
