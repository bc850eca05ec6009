# client/repository.py
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from client.http import ApiClient, ApiError
from client.results import Err, Ok, Result
from client.types import FileFilters, FilePage, FileUploadRequest, Pagination, RepositoryFile

logger = logging.getLogger(__name__)

REPOSITORY_PREFIX = "/repository"


def normalize_page(payload: Any) -> FilePage:
    """Accept either a bare list of files or a `{data, pagination}` envelope."""
    if isinstance(payload, list):
        items = payload
        pagination = None
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
        pagination = payload.get("pagination")
    else:
        raise ValueError("Unrecognized listing response")

    files = [RepositoryFile.model_validate(item) for item in items]
    if pagination:
        page = Pagination.model_validate(pagination)
    else:
        page = Pagination(
            current_page=1,
            total_pages=1,
            total_items=len(files),
            items_per_page=len(files),
        )
    return FilePage(files=files, pagination=page)


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class RepositoryGateway(ApiClient):
    """One network call per repository operation.

    Listing calls return ``Ok(FilePage)`` or ``Err(reason)`` so an empty result
    is never confused with a failed fetch. Single-item calls raise ``ApiError``
    carrying the server's message.
    """

    # ---------- listing ----------
    async def _list(self, path: str, filters: Optional[FileFilters] = None,
                    extra: Optional[Dict[str, Any]] = None) -> Result[FilePage]:
        params = (filters or FileFilters()).to_query()
        params.update({k: v for k, v in (extra or {}).items() if v not in (None, "")})
        try:
            payload = await self.request_json("GET", f"{REPOSITORY_PREFIX}{path}", params=params)
            return Ok(normalize_page(payload))
        except ApiError as e:
            logger.error(f"Listing {path} failed: {e.message}")
            return Err(e.message, e.status_code)
        except (ValueError, ValidationError) as e:
            logger.error(f"Listing {path} returned an unexpected shape: {e}")
            return Err("Invalid response from server")

    async def list_files(self, filters: Optional[FileFilters] = None) -> Result[FilePage]:
        return await self._list("/files", filters)

    async def search_files(self, query: str, filters: Optional[FileFilters] = None) -> Result[FilePage]:
        filters = (filters or FileFilters()).model_copy(update={"search": query})
        return await self._list("/search", filters)

    async def get_files_by_category(self, category: str,
                                    filters: Optional[FileFilters] = None) -> Result[FilePage]:
        return await self._list(f"/category/{quote(category, safe='')}", filters)

    async def get_files_by_department(self, department: str,
                                      filters: Optional[FileFilters] = None) -> Result[FilePage]:
        return await self._list(f"/department/{quote(department, safe='')}", filters)

    async def get_files_by_path(self, category: str, department: str, level: str, semester: str,
                                filters: Optional[FileFilters] = None) -> Result[FilePage]:
        filters = (filters or FileFilters()).model_copy(update={
            "category": category,
            "department": department,
            "level": level,
            "semester": semester,
        })
        return await self._list("/files", filters)

    async def get_multimedia_files(self, filters: Optional[FileFilters] = None) -> Result[FilePage]:
        return await self._list("/multimedia", filters)

    # ---------- single file ----------
    async def get_file(self, file_id: str) -> RepositoryFile:
        payload = await self.request_json("GET", f"{REPOSITORY_PREFIX}/files/{quote(file_id, safe='')}")
        return RepositoryFile.model_validate(_unwrap(payload))

    async def upload_file(self, request: FileUploadRequest) -> RepositoryFile:
        data: Dict[str, str] = {
            "category": request.category,
            "department": request.department,
            "level": request.level,
            "semester": request.semester,
        }
        if request.course_code:
            data["courseCode"] = request.course_code
        if request.course_title:
            data["courseTitle"] = request.course_title
        if request.description:
            data["description"] = request.description
        if request.tags:
            data["tags"] = ",".join(request.tags)
        if request.is_public is not None:
            data["isPublic"] = str(request.is_public).lower()
        if request.requires_auth is not None:
            data["requiresAuth"] = str(request.requires_auth).lower()
        if request.allowed_roles:
            data["allowedRoles"] = json.dumps(request.allowed_roles)

        selected = request.file
        payload = await self.request_json(
            "POST",
            f"{REPOSITORY_PREFIX}/upload",
            data=data,
            files={"file": (selected.name, selected.content, selected.mime_type)},
        )
        uploaded = RepositoryFile.model_validate(_unwrap(payload))
        logger.info(f"Uploaded {uploaded.file_name} as {uploaded.id}")
        return uploaded

    async def download_file(self, file_id: str) -> bytes:
        response = await self.request("GET", f"{REPOSITORY_PREFIX}/download/{quote(file_id, safe='')}")
        return response.content

    async def update_file(self, file_id: str, patch: Dict[str, Any]) -> RepositoryFile:
        body = {to_camel(k) if "_" in k else k: v for k, v in patch.items()}
        payload = await self.request_json(
            "PUT", f"{REPOSITORY_PREFIX}/files/{quote(file_id, safe='')}", json=body
        )
        return RepositoryFile.model_validate(_unwrap(payload))

    async def delete_file(self, file_id: str) -> None:
        await self.request("DELETE", f"{REPOSITORY_PREFIX}/files/{quote(file_id, safe='')}")
        logger.info(f"Deleted file {file_id}")

    async def like_file(self, file_id: str) -> int:
        payload = await self.request_json("POST", f"{REPOSITORY_PREFIX}/files/{quote(file_id, safe='')}/like")
        return int(_unwrap(payload).get("likeCount", 0))

    async def get_stats(self) -> Dict[str, Any]:
        return _unwrap(await self.request_json("GET", f"{REPOSITORY_PREFIX}/stats"))
