# client/types.py
import mimetypes
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from core.constants import TypeCategory
from utils.files import classify, format_duration, format_file_size, get_extension


class WireModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


def _coerce_id(v: Any) -> Any:
    if isinstance(v, dict):
        v = v.get("_id") or v.get("id")
    return str(v) if v is not None else v


class RepositoryFile(WireModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    file_name: str
    stored_name: Optional[str] = None
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    file_format: Optional[str] = None
    file_size: int = 0
    file_size_formatted: Optional[str] = None

    category: Optional[str] = None
    department: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    course_code: Optional[str] = None
    course_title: Optional[str] = None
    tags: List[str] = []
    description: Optional[str] = None

    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bitrate: Optional[int] = None
    resolution: Optional[str] = None
    frame_rate: Optional[float] = None
    pages: Optional[int] = None
    language: Optional[str] = None
    version: Optional[str] = None

    is_public: bool = True
    requires_auth: bool = False
    allowed_roles: List[str] = []
    is_approved: bool = False
    approved_at: Optional[datetime] = None
    moderation_notes: Optional[str] = None

    download_count: int = 0
    view_count: int = 0
    like_count: int = 0
    status: str = "active"
    upload_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "upload_by", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _coerce_id(v)

    @property
    def extension(self) -> str:
        return (self.file_format or get_extension(self.file_name)).lower()

    @property
    def type_category(self) -> TypeCategory:
        return classify(self.extension)

    @property
    def size_label(self) -> str:
        return self.file_size_formatted or format_file_size(self.file_size)

    @property
    def duration_label(self) -> Optional[str]:
        return format_duration(self.duration) if self.duration is not None else None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        now = datetime.now(self.expires_at.tzinfo) if self.expires_at.tzinfo else datetime.utcnow()
        return self.expires_at < now


class Pagination(WireModel):
    current_page: int = 1
    total_pages: int = 1
    total_items: int = 0
    items_per_page: int = 0
    has_next_page: bool = False
    has_prev_page: bool = False


class FilePage(BaseModel):
    files: List[RepositoryFile] = []
    pagination: Pagination = Pagination()

    @property
    def is_empty(self) -> bool:
        return not self.files


class UserProfile(WireModel):
    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "_id", "userId"))
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    matric_number: Optional[str] = None
    department: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str = "user"
    is_approved: bool = False
    is_verified: bool = False
    can_access_repository: bool = False
    two_factor_enabled: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)


class FileFilters(BaseModel):
    category: Optional[str] = None
    department: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    file_type: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    search: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None

    def to_query(self) -> Dict[str, Any]:
        """Query parameters in wire names, with unset and empty values dropped."""
        raw = {
            "category": self.category,
            "department": self.department,
            "level": self.level,
            "semester": self.semester,
            "fileType": self.file_type,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "search": self.search,
            "page": self.page,
            "limit": self.page_size,
        }
        return {k: v for k, v in raw.items() if v is not None and v != ""}


class SelectedFile(BaseModel):
    """A file picked for upload; its bytes are read once and never modified."""
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return self.content_type or mimetypes.guess_type(self.name)[0] or "application/octet-stream"

    @classmethod
    def from_path(cls, path: str) -> "SelectedFile":
        with open(path, "rb") as f:
            content = f.read()
        return cls(name=os.path.basename(path), content=content)


class FileUploadRequest(BaseModel):
    file: SelectedFile
    category: str
    department: str
    level: str
    semester: str
    course_code: Optional[str] = None
    course_title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    is_public: Optional[bool] = True
    requires_auth: Optional[bool] = False
    allowed_roles: List[str] = []
