# schemas/file.py
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import Field, field_validator

from core.constants import FileLevel, UserRole
from schemas.common import CamelModel
from utils.files import normalize_semester, normalize_tags


# ---------- update ----------
class FileUpdate(CamelModel):
    """Editable metadata. Unknown keys, including the immutable ones, are dropped."""
    category: Optional[str] = None
    department: Optional[str] = None
    level: Optional[FileLevel] = None
    semester: Optional[str] = None
    course_code: Optional[str] = Field(None, max_length=20)
    course_title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    tags: Optional[Union[List[str], str]] = None
    is_public: Optional[bool] = None
    requires_auth: Optional[bool] = None
    allowed_roles: Optional[List[UserRole]] = None
    language: Optional[str] = None
    version: Optional[str] = Field(None, max_length=20)
    expires_at: Optional[datetime] = None

    # multimedia metadata
    duration: Optional[float] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=0)
    height: Optional[int] = Field(None, ge=0)
    bitrate: Optional[int] = Field(None, ge=0)
    resolution: Optional[str] = None
    frame_rate: Optional[float] = Field(None, ge=0)
    pages: Optional[int] = Field(None, ge=0)

    @field_validator("semester")
    @classmethod
    def normalize(cls, v):
        return normalize_semester(v) if v is not None else v

    @field_validator("course_code")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if v else v

    @field_validator("tags")
    @classmethod
    def split_tags(cls, v):
        return normalize_tags(v) if v is not None else v


class FileApproval(CamelModel):
    approved: bool = True
    moderation_notes: Optional[str] = None


# ---------- output ----------
class RepositoryFileOut(CamelModel):
    id: str
    file_name: str
    stored_name: str
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    file_format: str
    file_size: int
    file_size_formatted: str
    file_type_category: str

    category: str
    department: str
    level: str
    semester: str
    course_code: Optional[str] = None
    course_title: Optional[str] = None
    course_info: Optional[str] = None
    tags: List[str] = []
    description: Optional[str] = None

    duration: Optional[float] = None
    duration_formatted: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bitrate: Optional[int] = None
    resolution: Optional[str] = None
    frame_rate: Optional[float] = None
    pages: Optional[int] = None
    language: Optional[str] = None
    version: Optional[str] = None

    is_public: bool
    requires_auth: bool
    allowed_roles: List[str] = []

    is_approved: bool
    approved_at: Optional[datetime] = None
    moderation_notes: Optional[str] = None

    download_count: int = 0
    view_count: int = 0
    like_count: int = 0
    status: str
    upload_by: Optional[str] = None
    checksum: Optional[str] = None

    expires_at: Optional[datetime] = None
    is_expired: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_file(cls, f) -> "RepositoryFileOut":
        return cls(
            id=f.uuid,
            file_name=f.file_name,
            stored_name=f.stored_name,
            file_url=f.file_url,
            file_type=f.file_type,
            file_format=f.file_format,
            file_size=f.file_size,
            file_size_formatted=f.file_size_formatted,
            file_type_category=f.file_type_category,
            category=f.category,
            department=f.department,
            level=f.level,
            semester=f.semester,
            course_code=f.course_code,
            course_title=f.course_title,
            course_info=f.course_info,
            tags=f.tags or [],
            description=f.description,
            duration=f.duration,
            duration_formatted=f.duration_formatted,
            width=f.width,
            height=f.height,
            bitrate=f.bitrate,
            resolution=f.resolution,
            frame_rate=f.frame_rate,
            pages=f.pages,
            language=f.language,
            version=f.version,
            is_public=f.is_public,
            requires_auth=f.requires_auth,
            allowed_roles=f.allowed_roles or [],
            is_approved=f.is_approved,
            approved_at=f.approved_at,
            moderation_notes=f.moderation_notes,
            download_count=f.download_count or 0,
            view_count=f.view_count or 0,
            like_count=f.like_count or 0,
            status=f.status,
            upload_by=f.uploader_uuid,
            checksum=f.checksum,
            expires_at=f.expires_at,
            is_expired=f.is_expired,
            created_at=f.created_at,
            updated_at=f.updated_at,
        )


# ---------- stats ----------
class StatsOverview(CamelModel):
    total_files: int = 0
    total_size: int = 0
    total_size_formatted: str = "0 Bytes"
    total_downloads: int = 0
    total_views: int = 0


class GroupStat(CamelModel):
    id: str
    count: int
    total_size: int


class RepositoryStats(CamelModel):
    overview: StatsOverview
    by_category: List[GroupStat] = []
    by_department: List[GroupStat] = []


class FileListQuery(CamelModel):
    """Listing filters as received on the query string."""
    category: Optional[str] = None
    department: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    file_type: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)

    def filters(self) -> Dict[str, str]:
        return {
            k: v
            for k, v in {
                "category": self.category,
                "department": self.department,
                "level": self.level,
                "semester": self.semester,
                "file_type": self.file_type,
            }.items()
            if v
        }
