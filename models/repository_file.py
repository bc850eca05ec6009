# models/repository_file.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from core.constants import FileStatus
from models.base import Base
from utils.files import classify, course_info, format_duration, format_file_size


class RepositoryFile(Base):
    __tablename__ = "repository_files"

    id = Column(Integer, primary_key=True)
    uuid = Column(String(36), unique=True, nullable=False, index=True, default=lambda: str(uuid.uuid4()))

    # ---------- file ----------
    file_name = Column(String(255), nullable=False)       # original name
    stored_name = Column(String(255), nullable=False, unique=True)
    file_path = Column(String(1000), nullable=False)
    file_url = Column(String(1000), nullable=True)
    file_type = Column(String(100), nullable=True)        # MIME type
    file_format = Column(String(20), nullable=False, default="")
    file_size = Column(Integer, nullable=False, default=0)
    checksum = Column(String(64), nullable=True)

    # ---------- classification ----------
    category = Column(String(50), nullable=False, index=True)
    department = Column(String(100), nullable=False, index=True)
    level = Column(String(20), nullable=False, index=True)
    semester = Column(String(20), nullable=False, default="general")
    course_code = Column(String(20), nullable=True)
    course_title = Column(String(200), nullable=True)
    tags = Column(JSON, default=list)
    description = Column(Text, nullable=True)

    # ---------- multimedia metadata ----------
    duration = Column(Float, nullable=True)  # seconds
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    bitrate = Column(Integer, nullable=True)
    resolution = Column(String(20), nullable=True)
    frame_rate = Column(Float, nullable=True)
    pages = Column(Integer, nullable=True)
    language = Column(String(20), nullable=True, default="en")
    version = Column(String(20), nullable=True)

    # ---------- access control ----------
    is_public = Column(Boolean, default=True, nullable=False)
    requires_auth = Column(Boolean, default=False, nullable=False)
    allowed_roles = Column(JSON, default=list)

    # ---------- moderation ----------
    is_approved = Column(Boolean, default=False, nullable=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    moderation_notes = Column(Text, nullable=True)

    # ---------- counters ----------
    download_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)

    status = Column(String(20), default=FileStatus.ACTIVE.value, nullable=False, index=True)

    upload_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    uploader_uuid = Column(String(36), nullable=True)

    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ---------- derived ----------
    @property
    def file_type_category(self) -> str:
        return classify(self.file_format).value

    @property
    def file_size_formatted(self) -> str:
        return format_file_size(self.file_size)

    @property
    def duration_formatted(self):
        if self.duration is None:
            return None
        return format_duration(self.duration)

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < datetime.utcnow()

    @property
    def course_info(self):
        return course_info(self.course_code, self.course_title)

    def __repr__(self):
        return f"<RepositoryFile {self.file_name} ({self.category})>"
