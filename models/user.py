# models/user.py
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from core.constants import UserRole
from models.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))

    # ---------- identity ----------
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    matric_number = Column(String(20), unique=True, index=True, nullable=False)
    department = Column(String(100), nullable=True)

    # ---------- auth ----------
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    refresh_token = Column(String(512), nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    # ---------- repository access ----------
    is_approved = Column(Boolean, default=False, nullable=False)
    can_access_repository = Column(Boolean, default=False, nullable=False)

    # ---------- profile ----------
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    level = Column(String(20), nullable=True)
    semester = Column(String(20), nullable=True)

    # ---------- 2FA ----------
    two_fa_enabled = Column(Boolean, default=False, nullable=False)
    two_fa_secret = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_profile_complete(self) -> bool:
        return all(
            (value or "").strip()
            for value in (self.department, self.level, self.semester, self.phone, self.address)
        )

    def __repr__(self):
        return f"<User {self.email}>"
