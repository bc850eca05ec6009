# services/repository_service.py
import hashlib
import logging
import mimetypes
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
import slugify
from fastapi import HTTPException, UploadFile, status
from sqlalchemy import String, and_, asc, cast, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.constants import (
    MULTIMEDIA_CATEGORIES,
    TYPE_CATEGORY_EXTENSIONS,
    FileLevel,
    FileStatus,
    TypeCategory,
    UserRole,
    get_allowed_file_types,
    get_category,
    get_max_file_size,
)
from models.repository_file import RepositoryFile
from models.user import User
from schemas.file import (
    FileListQuery,
    FileUpdate,
    GroupStat,
    RepositoryFileOut,
    RepositoryStats,
    StatsOverview,
)
from utils.file_validation import validate_upload
from utils.files import format_file_size, get_extension, normalize_semester, normalize_tags
from utils.pagination import build_pagination

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": RepositoryFile.created_at,
    "updatedAt": RepositoryFile.updated_at,
    "fileName": RepositoryFile.file_name,
    "fileSize": RepositoryFile.file_size,
    "downloadCount": RepositoryFile.download_count,
    "viewCount": RepositoryFile.view_count,
    "likeCount": RepositoryFile.like_count,
    "category": RepositoryFile.category,
    "level": RepositoryFile.level,
}

MODERATOR_ROLES = (UserRole.ADMIN.value, UserRole.MODERATOR.value)


class RepositoryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.storage_path = settings.FILE_STORAGE_PATH
        self.max_file_size = settings.MAX_FILE_SIZE

        Path(self.storage_path).mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------
    # UPLOAD
    # ------------------------------------------------
    async def upload_file(
            self,
            file: UploadFile,
            user: User,
            category: str,
            department: str,
            level: str,
            semester: str,
            course_code: Optional[str] = None,
            course_title: Optional[str] = None,
            description: Optional[str] = None,
            tags: Optional[str] = None,
            is_public: bool = True,
            requires_auth: bool = False,
            allowed_roles: Optional[List[str]] = None,
    ) -> RepositoryFile:
        if not file or not file.filename:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "No file uploaded")

        missing = [name for name, value in (
            ("category", category), ("department", department), ("level", level), ("semester", semester),
        ) if not value]
        if missing:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"Missing required fields: {', '.join(missing)}",
            )

        if not get_category(category):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Unknown category: {category}")
        if level not in {lvl.value for lvl in FileLevel}:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid level: {level}")

        content = await file.read()

        if len(content) > self.max_file_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File size exceeds limit: {format_file_size(self.max_file_size)}",
            )

        errors = validate_upload(file.filename, len(content), category)
        if errors:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "; ".join(errors))

        extension = get_extension(file.filename)
        semester = normalize_semester(semester)
        mime_type = (
            file.content_type
            or mimetypes.guess_type(file.filename)[0]
            or "application/octet-stream"
        )

        stored_name = f"{uuid.uuid4().hex}.{extension}" if extension else uuid.uuid4().hex
        storage_path = self._get_storage_path(category, department, level, semester, stored_name)
        await self._save_file(storage_path, content)

        repository_file = RepositoryFile(
            file_name=file.filename,
            stored_name=stored_name,
            file_path=storage_path,
            file_type=mime_type,
            file_format=extension,
            file_size=len(content),
            checksum=self._calculate_file_hash(content),
            category=category,
            department=department.strip(),
            level=level,
            semester=semester,
            course_code=course_code.strip().upper() if course_code else None,
            course_title=course_title.strip() if course_title else None,
            description=description,
            tags=normalize_tags(tags),
            is_public=is_public,
            requires_auth=requires_auth,
            allowed_roles=[r for r in (allowed_roles or []) if r in {role.value for role in UserRole}],
            is_approved=user.role in MODERATOR_ROLES,
            approved_by=user.id if user.role in MODERATOR_ROLES else None,
            approved_at=datetime.utcnow() if user.role in MODERATOR_ROLES else None,
            upload_by=user.id,
            uploader_uuid=user.uuid,
        )

        self.db.add(repository_file)
        await self.db.commit()
        await self.db.refresh(repository_file)

        repository_file.file_url = f"/api/repository/download/{repository_file.uuid}"
        await self.db.commit()

        logger.info(f"File uploaded: {repository_file.file_name} ({repository_file.category}) by {user.email}")
        return repository_file

    # ------------------------------------------------
    # LIST / SEARCH
    # ------------------------------------------------
    async def list_files(
            self,
            query: FileListQuery,
            user: User,
            extra_conditions: Optional[List[Any]] = None,
    ) -> Dict[str, Any]:
        conditions = [RepositoryFile.status == FileStatus.ACTIVE.value]
        conditions.extend(extra_conditions or [])

        filters = query.filters()
        if "category" in filters:
            conditions.append(RepositoryFile.category == filters["category"])
        if "department" in filters:
            conditions.append(RepositoryFile.department == filters["department"])
        if "level" in filters:
            conditions.append(RepositoryFile.level == filters["level"])
        if "semester" in filters:
            conditions.append(RepositoryFile.semester == normalize_semester(filters["semester"]))
        if "file_type" in filters:
            conditions.append(self._file_type_condition(filters["file_type"]))

        if query.search:
            conditions.append(self._search_condition(query.search))

        visibility = self._visibility_condition(user)
        if visibility is not None:
            conditions.append(visibility)

        where = and_(*conditions)

        total = (
            await self.db.execute(select(func.count(RepositoryFile.id)).where(where))
        ).scalar_one()

        column = SORT_COLUMNS.get(query.sort_by, RepositoryFile.created_at)
        order = asc(column) if query.sort_order == "asc" else desc(column)

        result = await self.db.execute(
            select(RepositoryFile)
            .where(where)
            .order_by(order, desc(RepositoryFile.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        files = result.scalars().all()

        return {
            "success": True,
            "data": [RepositoryFileOut.from_file(f).to_wire() for f in files],
            "pagination": build_pagination(query.page, query.limit, total).to_wire(),
        }

    async def list_multimedia(self, query: FileListQuery, user: User) -> Dict[str, Any]:
        return await self.list_files(
            query, user, [RepositoryFile.category.in_(MULTIMEDIA_CATEGORIES)]
        )

    @staticmethod
    def _search_condition(search: str):
        pattern = f"%{search.strip()}%"
        return or_(
            RepositoryFile.file_name.ilike(pattern),
            RepositoryFile.description.ilike(pattern),
            RepositoryFile.course_code.ilike(pattern),
            RepositoryFile.course_title.ilike(pattern),
            cast(RepositoryFile.tags, String).ilike(pattern),
        )

    @staticmethod
    def _file_type_condition(file_type: str):
        try:
            type_category = TypeCategory(file_type)
        except ValueError:
            return RepositoryFile.file_type == file_type

        if type_category == TypeCategory.OTHER:
            known = set().union(*TYPE_CATEGORY_EXTENSIONS.values())
            return RepositoryFile.file_format.notin_(sorted(known))
        return RepositoryFile.file_format.in_(sorted(TYPE_CATEGORY_EXTENSIONS[type_category]))

    @staticmethod
    def _visibility_condition(user: User):
        if user.role in MODERATOR_ROLES:
            return None
        return or_(RepositoryFile.is_approved.is_(True), RepositoryFile.upload_by == user.id)

    # ------------------------------------------------
    # SINGLE FILE
    # ------------------------------------------------
    async def get_file_info(self, file_id: str, user: User) -> RepositoryFile:
        repository_file = await self._get_file(file_id)

        if not self._check_file_access(repository_file, user):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Access denied")

        repository_file.view_count = (repository_file.view_count or 0) + 1
        await self.db.commit()
        await self.db.refresh(repository_file)
        return repository_file

    async def download_file(self, file_id: str, user: User) -> Tuple[RepositoryFile, bytes]:
        repository_file = await self._get_file(file_id)

        if not self._check_file_access(repository_file, user):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Access denied")

        content = await self._read_file(repository_file.file_path)

        repository_file.download_count = (repository_file.download_count or 0) + 1
        await self.db.commit()

        logger.info(f"File downloaded: {repository_file.file_name} by {user.email}")
        return repository_file, content

    async def like_file(self, file_id: str, user: User) -> RepositoryFile:
        repository_file = await self._get_file(file_id)

        if not self._check_file_access(repository_file, user):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Access denied")

        repository_file.like_count = (repository_file.like_count or 0) + 1
        await self.db.commit()
        await self.db.refresh(repository_file)
        return repository_file

    async def update_file(self, file_id: str, update_data: FileUpdate, user: User) -> RepositoryFile:
        repository_file = await self._get_file(file_id)

        if not self._check_file_ownership(repository_file, user):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Not authorized to update this file")

        changes = update_data.model_dump(exclude_unset=True)

        if changes.get("category"):
            category = changes["category"]
            if not get_category(category):
                raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Unknown category: {category}")
            if repository_file.file_format not in get_allowed_file_types(category):
                raise HTTPException(
                    status.HTTP_400_BAD_REQUEST,
                    f"File type {repository_file.file_format} is not allowed in {category}",
                )
            if repository_file.file_size > get_max_file_size(category):
                raise HTTPException(
                    status.HTTP_400_BAD_REQUEST,
                    f"File too large for {category}. Maximum size: {format_file_size(get_max_file_size(category))}",
                )

        for key, value in changes.items():
            if value is None:
                continue
            if key == "allowed_roles":
                value = [r.value if hasattr(r, "value") else r for r in value]
            elif hasattr(value, "value"):
                value = value.value
            setattr(repository_file, key, value)

        await self.db.commit()
        await self.db.refresh(repository_file)

        logger.info(f"File updated: {repository_file.uuid} fields={list(changes)}")
        return repository_file

    async def delete_file(self, file_id: str, user: User) -> None:
        repository_file = await self._get_file(file_id)

        if not self._check_file_ownership(repository_file, user):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Not authorized to delete this file")

        file_path = repository_file.file_path
        await self.db.delete(repository_file)
        await self.db.commit()
        await self._delete_physical_file(file_path)

        logger.info(f"File deleted: {file_id} by {user.email}")

    async def approve_file(self, file_id: str, approver: User, approved: bool = True,
                           notes: Optional[str] = None) -> RepositoryFile:
        repository_file = await self._get_file(file_id)

        repository_file.is_approved = approved
        repository_file.approved_by = approver.id if approved else None
        repository_file.approved_at = datetime.utcnow() if approved else None
        if notes is not None:
            repository_file.moderation_notes = notes

        await self.db.commit()
        await self.db.refresh(repository_file)

        logger.info(f"File {file_id} {'approved' if approved else 'unapproved'} by {approver.email}")
        return repository_file

    # ------------------------------------------------
    # STATS
    # ------------------------------------------------
    async def get_stats(self) -> Dict[str, Any]:
        active = RepositoryFile.status == FileStatus.ACTIVE.value

        overview = (await self.db.execute(
            select(
                func.count(RepositoryFile.id),
                func.coalesce(func.sum(RepositoryFile.file_size), 0),
                func.coalesce(func.sum(RepositoryFile.download_count), 0),
                func.coalesce(func.sum(RepositoryFile.view_count), 0),
            ).where(active)
        )).one()

        by_category = await self._group_stats(RepositoryFile.category, active)
        by_department = await self._group_stats(RepositoryFile.department, active)

        return RepositoryStats(
            overview=StatsOverview(
                total_files=overview[0],
                total_size=int(overview[1]),
                total_size_formatted=format_file_size(int(overview[1])),
                total_downloads=int(overview[2]),
                total_views=int(overview[3]),
            ),
            by_category=by_category,
            by_department=by_department,
        ).to_wire()

    async def _group_stats(self, column, condition) -> List[GroupStat]:
        count = func.count(RepositoryFile.id)
        result = await self.db.execute(
            select(column, count, func.coalesce(func.sum(RepositoryFile.file_size), 0))
            .where(condition)
            .group_by(column)
            .order_by(desc(count))
        )
        return [GroupStat(id=key, count=n, total_size=int(size)) for key, n, size in result.all()]

    # ------------------------------------------------
    # HELPERS
    # ------------------------------------------------
    async def _get_file(self, file_id: str) -> RepositoryFile:
        result = await self.db.execute(
            select(RepositoryFile).where(RepositoryFile.uuid == str(file_id))
        )
        repository_file = result.scalar_one_or_none()
        if not repository_file:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "File not found")
        return repository_file

    @staticmethod
    def _check_file_access(repository_file: RepositoryFile, user: User) -> bool:
        if user.role == UserRole.ADMIN.value:
            return True
        if repository_file.upload_by == user.id:
            return True
        if not repository_file.is_approved and user.role not in MODERATOR_ROLES:
            return False
        if not repository_file.is_public:
            return False
        if repository_file.allowed_roles and user.role not in repository_file.allowed_roles:
            return False
        return True

    @staticmethod
    def _check_file_ownership(repository_file: RepositoryFile, user: User) -> bool:
        return user.role == UserRole.ADMIN.value or repository_file.upload_by == user.id

    def _get_storage_path(self, category: str, department: str, level: str, semester: str,
                          stored_name: str) -> str:
        segments = [slugify.slugify(s) or "general" for s in (category, department, level, semester)]
        return os.path.join(self.storage_path, *segments, stored_name)

    @staticmethod
    def _calculate_file_hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    @staticmethod
    async def _save_file(path: str, content: bytes) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

    @staticmethod
    async def _read_file(path: str) -> bytes:
        if not os.path.exists(path):
            logger.error(f"Stored file missing on disk: {path}")
            raise HTTPException(status.HTTP_404_NOT_FOUND, "File not found on server")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    @staticmethod
    async def _delete_physical_file(path: str) -> None:
        if path and os.path.exists(path):
            os.remove(path)
        else:
            logger.warning(f"Delete requested for missing file: {path}")
