# schemas/user.py
import re
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from core.constants import FileLevel
from schemas.common import CamelModel
from utils.files import normalize_semester

MATRIC_PATTERN = re.compile(r"^RUN/[A-Z]{3}/[0-9]{2}/[0-9]{5}$", re.IGNORECASE)


# ---------- registration ----------
class UserRegister(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    matric_number: str
    department: str

    class Config:
        json_schema_extra = {
            "example": {
                "firstName": "Ada",
                "lastName": "Obi",
                "email": "obi12345@run.edu.ng",
                "password": "secret1",
                "matricNumber": "RUN/CSC/21/12345",
                "department": "Computer Science",
            }
        }

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()

    @field_validator("matric_number")
    @classmethod
    def check_matric(cls, v: str) -> str:
        v = v.strip().upper()
        if not MATRIC_PATTERN.match(v):
            raise ValueError("Matric number must be in format: RUN/DEPT/YY/12345")
        return v


# ---------- profile ----------
class ProfileUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    level: Optional[FileLevel] = None
    semester: Optional[str] = None

    @field_validator("semester")
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return normalize_semester(v)


# ---------- output ----------
class UserOut(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str
    matric_number: str
    department: Optional[str] = None
    role: str
    is_verified: bool
    is_approved: bool
    can_access_repository: bool
    is_active: bool
    phone: Optional[str] = None
    address: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    two_factor_enabled: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserOut":
        return cls(
            id=user.uuid,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            matric_number=user.matric_number,
            department=user.department,
            role=user.role,
            is_verified=user.is_verified,
            is_approved=user.is_approved,
            can_access_repository=user.can_access_repository,
            is_active=user.is_active,
            phone=user.phone,
            address=user.address,
            level=user.level,
            semester=user.semester,
            two_factor_enabled=user.two_fa_enabled,
            last_login=user.last_login_at,
            created_at=user.created_at,
        )
