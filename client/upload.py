# client/upload.py
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Union

from client.access import AccessGate, evaluate
from client.http import ApiError
from client.repository import RepositoryGateway
from client.session import Session
from client.types import FileUploadRequest, RepositoryFile, SelectedFile
from utils.file_validation import validate_upload

logger = logging.getLogger(__name__)

PROFILE_REQUIRED_MESSAGE = (
    "Please complete your profile information (department, level, semester) before "
    "uploading files. You can edit your profile from the Profile page."
)
REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields and select a file"
UPLOAD_FAILED_MESSAGE = "Upload failed"

PROGRESS_STEPS = 20


@dataclass(frozen=True)
class UploadProgress:
    loaded: int
    total: int
    percentage: int


ProgressCallback = Callable[[UploadProgress], Union[None, Awaitable[None]]]


def split_tags(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]


class UploadController:
    """Form state for a single upload.

    Department, level and semester default to the signed-in user's profile.
    Progress is simulated while the request is in flight, then pinned to 100.
    """

    def __init__(
            self,
            gateway: RepositoryGateway,
            session: Optional[Session] = None,
            gate: Optional[AccessGate] = None,
            on_progress: Optional[ProgressCallback] = None,
            on_success: Optional[Callable[[RepositoryFile], None]] = None,
            on_error: Optional[Callable[[str], None]] = None,
            tick_interval: float = 0.1,
    ):
        self.gateway = gateway
        self.session = session or gateway.session
        self.gate = gate or AccessGate()
        self.on_progress = on_progress
        self.on_success = on_success
        self.on_error = on_error
        self.tick_interval = tick_interval

        user = self.session.user
        self.category: Optional[str] = None
        self.department: Optional[str] = user.department if user else None
        self.level: Optional[str] = user.level if user else None
        self.semester: Optional[str] = user.semester if user else None
        self.errors: List[str] = []
        self.is_uploading = False
        self.progress: Optional[UploadProgress] = None
        self.selected_file: Optional[SelectedFile] = None
        self.reset_form()

    def reset_form(self) -> None:
        self.selected_file = None
        self.course_code = ""
        self.course_title = ""
        self.description = ""
        self.tags = ""
        self.is_public = True
        self.requires_auth = False
        self.progress = None

    def set_category(self, category: Optional[str]) -> None:
        self.category = category or None

    def select_file(self, selected: SelectedFile) -> List[str]:
        """Validate and keep the file only when it passes; returns the errors."""
        self.errors = validate_upload(selected.name, selected.size, self.category)
        self.selected_file = None if self.errors else selected
        return self.errors

    async def _report(self, progress: UploadProgress) -> None:
        self.progress = progress
        if self.on_progress is not None:
            result = self.on_progress(progress)
            if inspect.isawaitable(result):
                await result

    async def _tick(self, total: int) -> None:
        loaded = 0
        await self._report(UploadProgress(0, total, 0))
        while True:
            await asyncio.sleep(self.tick_interval)
            loaded = min(loaded + max(total // PROGRESS_STEPS, 1), total)
            percentage = round(loaded / total * 100) if total else 100
            await self._report(UploadProgress(loaded, total, percentage))

    def _missing_fields(self) -> List[str]:
        values = {
            "file": self.selected_file,
            "category": self.category,
            "department": self.department,
            "level": self.level,
            "semester": self.semester,
        }
        return [name for name, value in values.items() if not value]

    async def submit(self) -> Optional[RepositoryFile]:
        missing = self._missing_fields()
        if missing:
            if {"department", "level", "semester"} & set(missing):
                self.errors = [PROFILE_REQUIRED_MESSAGE]
            else:
                self.errors = [REQUIRED_FIELDS_MESSAGE]
            return None

        user = self.session.user
        if not self.gate.can_modify(user):
            self.errors = [self.gate.block_message(evaluate(user))]
            return None

        request = FileUploadRequest(
            file=self.selected_file,
            category=self.category,
            department=self.department,
            level=self.level,
            semester=self.semester,
            course_code=self.course_code or None,
            course_title=self.course_title or None,
            description=self.description or None,
            tags=split_tags(self.tags),
            is_public=self.is_public,
            requires_auth=self.requires_auth,
        )

        self.is_uploading = True
        self.errors = []
        total = self.selected_file.size
        ticker = asyncio.ensure_future(self._tick(total))
        try:
            uploaded = await self.gateway.upload_file(request)
        except ApiError as e:
            logger.error(f"Upload of {request.file.name} failed: {e.message}")
            self.errors = [e.message or UPLOAD_FAILED_MESSAGE]
            self.progress = None
            if self.on_error is not None:
                self.on_error(self.errors[0])
            return None
        finally:
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass
            self.is_uploading = False

        await self._report(UploadProgress(total, total, 100))
        self.reset_form()
        if self.on_success is not None:
            self.on_success(uploaded)
        return uploaded
