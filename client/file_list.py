# client/file_list.py
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, Union

from client.access import AccessGate, evaluate
from client.http import ApiError
from client.repository import RepositoryGateway
from client.session import Session
from client.types import FileFilters, RepositoryFile

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load files. Please try again."
DOWNLOAD_DENIED_MESSAGE = "You must be approved for repository access to download files."
DELETE_DENIED_MESSAGE = "You must be approved for repository access to delete files."
DELETE_PROFILE_MESSAGE = "Please complete your profile before deleting files."
DOWNLOAD_FAILED_MESSAGE = "Failed to download file. Please try again."
DELETE_FAILED_MESSAGE = "Failed to delete file. Please try again."
DELETE_CONFIRM_MESSAGE = "Are you sure you want to delete this file?"

SORT_OPTIONS: List[Tuple[str, str]] = [
    ("createdAt:desc", "Newest First"),
    ("createdAt:asc", "Oldest First"),
    ("fileName:asc", "Name A-Z"),
    ("fileName:desc", "Name Z-A"),
    ("fileSize:desc", "Size (Largest)"),
    ("fileSize:asc", "Size (Smallest)"),
    ("downloadCount:desc", "Most Downloads"),
    ("viewCount:desc", "Most Views"),
]
SORT_FIELDS = ("createdAt", "fileName", "fileSize", "downloadCount", "viewCount")

Notifier = Callable[[str], Union[None, Awaitable[None]]]
Confirm = Callable[[str], Union[bool, Awaitable[bool]]]
Saver = Callable[[str, bytes], Union[None, Awaitable[None]]]


async def _call(fn: Optional[Callable], *args) -> Any:
    if fn is None:
        return None
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def parse_sort(value: str) -> Tuple[str, str]:
    field, _, order = value.partition(":")
    order = order or "desc"
    if field not in SORT_FIELDS or order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort option: {value}")
    return field, order


class FileListController:
    """Headless state for a searchable, sortable, paginated file list.

    Every fetch takes a generation number; a response that arrives after a
    newer fetch was issued is dropped.
    """

    def __init__(
            self,
            gateway: RepositoryGateway,
            session: Optional[Session] = None,
            gate: Optional[AccessGate] = None,
            filters: Optional[FileFilters] = None,
            notifier: Optional[Notifier] = None,
            confirm: Optional[Confirm] = None,
            search_debounce: float = 0.0,
    ):
        self.gateway = gateway
        self.session = session or gateway.session
        self.gate = gate or AccessGate()
        self.notifier = notifier
        self.confirm = confirm
        self.search_debounce = search_debounce

        self.files: List[RepositoryFile] = []
        self.loading = False
        self.error: Optional[str] = None
        self.blocked_message: Optional[str] = None
        self.search = ""
        self.filters = filters or FileFilters()
        self.page = 1
        self.total_pages = 1
        self.total_items = 0
        self.selected_file: Optional[RepositoryFile] = None

        self._generation = 0
        self._deleting: Set[str] = set()
        self._pending_search: Optional[asyncio.Task] = None

    # ---------- state ----------
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def is_empty(self) -> bool:
        return not self.loading and self.error is None and not self.files

    def query(self) -> FileFilters:
        """The filters the next fetch will send."""
        return self.filters.model_copy(update={
            "search": self.search.strip() or None,
            "page": self.page,
        })

    # ---------- loading ----------
    async def load(self) -> None:
        user = self.session.user
        if not self.gate.can_browse(user):
            self.blocked_message = self.gate.block_message(evaluate(user))
            self.files = []
            return
        self.blocked_message = None

        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None

        result = await self.gateway.list_files(self.query())
        if generation != self._generation:
            logger.debug(f"Dropping stale listing response (generation {generation})")
            return

        self.loading = False
        if not result.ok:
            self.error = LOAD_ERROR_MESSAGE
            self.files = []
            return

        page = result.value
        self.files = list(page.files)
        self.total_pages = max(page.pagination.total_pages, 1)
        self.total_items = page.pagination.total_items

    async def retry(self) -> None:
        await self.load()

    async def set_search(self, text: str) -> None:
        self.search = text
        self.page = 1
        if self.search_debounce <= 0:
            await self.load()
            return
        if self._pending_search is not None and not self._pending_search.done():
            self._pending_search.cancel()
        self._pending_search = asyncio.ensure_future(self._debounced_load())

    async def _debounced_load(self) -> None:
        await asyncio.sleep(self.search_debounce)
        await self.load()

    async def wait_for_search(self) -> None:
        task = self._pending_search
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def set_sort(self, value: str) -> None:
        sort_by, sort_order = parse_sort(value)
        self.filters = self.filters.model_copy(update={"sort_by": sort_by, "sort_order": sort_order})
        self.page = 1
        await self.load()

    async def set_filters(self, **changes) -> None:
        self.filters = self.filters.model_copy(update=changes)
        self.page = 1
        await self.load()

    async def next_page(self) -> None:
        if not self.has_next_page:
            return
        self.page += 1
        await self.load()

    async def previous_page(self) -> None:
        if not self.has_prev_page:
            return
        self.page -= 1
        await self.load()

    # ---------- per-file actions ----------
    def select(self, repository_file: Optional[RepositoryFile]) -> None:
        self.selected_file = repository_file

    async def download(self, repository_file: RepositoryFile, save: Saver) -> bool:
        if not self.gate.can_download(self.session.user):
            await _call(self.notifier, DOWNLOAD_DENIED_MESSAGE)
            return False
        try:
            content = await self.gateway.download_file(repository_file.id)
        except ApiError as e:
            logger.error(f"Download of {repository_file.id} failed: {e.message}")
            await _call(self.notifier, DOWNLOAD_FAILED_MESSAGE)
            return False
        await _call(save, repository_file.file_name, content)
        return True

    async def delete(self, file_id: str) -> bool:
        user = self.session.user
        if not self.gate.can_download(user):
            await _call(self.notifier, DELETE_DENIED_MESSAGE)
            return False
        if not self.gate.can_modify(user):
            await _call(self.notifier, DELETE_PROFILE_MESSAGE)
            return False

        if file_id in self._deleting or not any(f.id == file_id for f in self.files):
            return False
        self._deleting.add(file_id)
        try:
            if self.confirm is not None and not await _call(self.confirm, DELETE_CONFIRM_MESSAGE):
                return False
            try:
                await self.gateway.delete_file(file_id)
            except ApiError as e:
                logger.error(f"Delete of {file_id} failed: {e.message}")
                await _call(self.notifier, DELETE_FAILED_MESSAGE)
                return False

            before = len(self.files)
            self.files = [f for f in self.files if f.id != file_id]
            self.total_items = max(self.total_items - (before - len(self.files)), 0)
            if self.selected_file is not None and self.selected_file.id == file_id:
                self.selected_file = None
            return True
        finally:
            self._deleting.discard(file_id)
