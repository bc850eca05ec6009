# scripts/create_admin.py
import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import UserRole
from core.database import AsyncSessionLocal, engine
from core.security import hash_password
from models import Base
from models.user import User


async def create_admin(db: AsyncSession, email: str, password: str, first_name: str, last_name: str,
                       matric_number: str) -> User:
    """Create an administrator, or promote the existing account with that email."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()

    if not user:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email.lower(),
            matric_number=matric_number.upper(),
            hashed_password=hash_password(password),
        )
        db.add(user)

    user.role = UserRole.ADMIN.value
    user.is_verified = True
    user.is_approved = True
    user.can_access_repository = True

    await db.commit()
    await db.refresh(user)
    return user


async def main(args):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        user = await create_admin(
            db, args.email, args.password, args.first_name, args.last_name, args.matric_number
        )
    print(f"Administrator ready: {user.email} ({user.uuid})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote a repository administrator")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--first-name", default="Repository")
    parser.add_argument("--last-name", default="Admin")
    parser.add_argument("--matric-number", default="RUN/ADM/00/00000")
    asyncio.run(main(parser.parse_args()))
