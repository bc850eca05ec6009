# api/v1/endpoints/repository.py
import io
import json
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File as FastAPIFile, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import REPOSITORY_CATEGORIES, REPOSITORY_DEPARTMENTS
from core.database import get_db
from core.permissions import require_complete_profile, require_repository_access
from models.user import User
from schemas.file import FileListQuery, FileUpdate, RepositoryFileOut
from services.repository_service import RepositoryService

router = APIRouter()


def list_query(
        category: Optional[str] = Query(None),
        department: Optional[str] = Query(None),
        level: Optional[str] = Query(None),
        semester: Optional[str] = Query(None),
        file_type: Optional[str] = Query(None, alias="fileType"),
        search: Optional[str] = Query(None),
        sort_by: str = Query("createdAt", alias="sortBy"),
        sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
) -> FileListQuery:
    return FileListQuery(
        category=category,
        department=department,
        level=level,
        semester=semester,
        file_type=file_type,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_roles(value: Optional[str]) -> List[str]:
    if not value:
        return []
    try:
        roles = json.loads(value)
    except json.JSONDecodeError:
        roles = value.split(",")
    if isinstance(roles, str):
        roles = [roles]
    return [str(r).strip() for r in roles if str(r).strip()]


# ---------- upload ----------
@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_file(
        file: UploadFile = FastAPIFile(...),
        category: Optional[str] = Form(None),
        department: Optional[str] = Form(None),
        level: Optional[str] = Form(None),
        semester: Optional[str] = Form(None),
        course_code: Optional[str] = Form(None, alias="courseCode"),
        course_title: Optional[str] = Form(None, alias="courseTitle"),
        description: Optional[str] = Form(None),
        tags: Optional[str] = Form(None),
        is_public: Optional[str] = Form(None, alias="isPublic"),
        requires_auth: Optional[str] = Form(None, alias="requiresAuth"),
        allowed_roles: Optional[str] = Form(None, alias="allowedRoles"),
        current_user: User = Depends(require_complete_profile),
        db: AsyncSession = Depends(get_db),
):
    repository_file = await RepositoryService(db).upload_file(
        file,
        current_user,
        category=category,
        department=department,
        level=level,
        semester=semester,
        course_code=course_code,
        course_title=course_title,
        description=description,
        tags=tags,
        is_public=_parse_bool(is_public, True),
        requires_auth=_parse_bool(requires_auth, False),
        allowed_roles=_parse_roles(allowed_roles),
    )
    return {
        "success": True,
        "message": "File uploaded successfully",
        "data": RepositoryFileOut.from_file(repository_file).to_wire(),
    }


# ---------- listing ----------
@router.get("/files")
async def list_files(
        query: FileListQuery = Depends(list_query),
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    return await RepositoryService(db).list_files(query, current_user)


@router.get("/search")
async def search_files(
        q: Optional[str] = Query(None),
        query: FileListQuery = Depends(list_query),
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    if q and not query.search:
        query.search = q
    return await RepositoryService(db).list_files(query, current_user)


@router.get("/category/{category_name}")
async def files_by_category(
        category_name: str,
        query: FileListQuery = Depends(list_query),
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    query.category = category_name
    return await RepositoryService(db).list_files(query, current_user)


@router.get("/department/{department_code}")
async def files_by_department(
        department_code: str,
        query: FileListQuery = Depends(list_query),
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    query.department = department_code
    return await RepositoryService(db).list_files(query, current_user)


@router.get("/multimedia")
async def multimedia_files(
        query: FileListQuery = Depends(list_query),
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    return await RepositoryService(db).list_multimedia(query, current_user)


@router.get("/categories")
async def list_categories():
    return {
        "success": True,
        "data": {
            "categories": [
                {
                    "name": c.name,
                    "label": c.label,
                    "description": c.description,
                    "icon": c.icon,
                    "color": c.color,
                    "allowedFileTypes": c.allowed_file_types,
                    "maxFileSize": c.max_file_size,
                }
                for c in REPOSITORY_CATEGORIES
            ],
            "departments": [
                {"code": d.code, "name": d.name, "description": d.description, "levels": d.levels}
                for d in REPOSITORY_DEPARTMENTS
            ],
        },
    }


@router.get("/stats")
async def repository_stats(
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await RepositoryService(db).get_stats()}


# ---------- single file ----------
@router.get("/files/{file_id}")
async def get_file(
        file_id: str,
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    repository_file = await RepositoryService(db).get_file_info(file_id, current_user)
    return {"success": True, "data": RepositoryFileOut.from_file(repository_file).to_wire()}


@router.get("/download/{file_id}")
@router.get("/files/{file_id}/download")
async def download_file(
        file_id: str,
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    repository_file, content = await RepositoryService(db).download_file(file_id, current_user)

    return StreamingResponse(
        io.BytesIO(content),
        media_type=repository_file.file_type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(repository_file.file_name)}",
            "Content-Length": str(len(content)),
        },
    )


@router.post("/files/{file_id}/like")
async def like_file(
        file_id: str,
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    repository_file = await RepositoryService(db).like_file(file_id, current_user)
    return {"success": True, "data": {"likeCount": repository_file.like_count}}


@router.put("/files/{file_id}")
async def update_file(
        file_id: str,
        update_data: FileUpdate,
        current_user: User = Depends(require_repository_access),
        db: AsyncSession = Depends(get_db),
):
    repository_file = await RepositoryService(db).update_file(file_id, update_data, current_user)
    return {
        "success": True,
        "message": "File updated successfully",
        "data": RepositoryFileOut.from_file(repository_file).to_wire(),
    }


@router.delete("/files/{file_id}")
async def delete_file(
        file_id: str,
        current_user: User = Depends(require_complete_profile),
        db: AsyncSession = Depends(get_db),
):
    await RepositoryService(db).delete_file(file_id, current_user)
    return {"success": True, "message": "File deleted successfully"}
