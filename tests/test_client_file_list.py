import asyncio

import httpx

from client.access import UNAPPROVED_MESSAGE
from client.file_list import (
    DELETE_CONFIRM_MESSAGE,
    DELETE_FAILED_MESSAGE,
    DOWNLOAD_DENIED_MESSAGE,
    LOAD_ERROR_MESSAGE,
    SORT_OPTIONS,
    FileListController,
)
from client.repository import RepositoryGateway
from client.types import FileFilters, RepositoryFile
from conftest import APPROVED_USER, file_json, make_api, make_session


def file_json_model():
    return RepositoryFile.model_validate(file_json())


def paged(files, page=1, total_pages=1, total_items=None):
    return {
        "success": True,
        "data": files,
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalItems": len(files) if total_items is None else total_items,
            "itemsPerPage": 20,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }


def test_sort_menu_has_eight_options():
    assert len(SORT_OPTIONS) == 8
    assert SORT_OPTIONS[0] == ("createdAt:desc", "Newest First")


async def test_search_sort_and_category_produce_exact_query():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, json=paged([]))

    gateway = make_api(RepositoryGateway, handler)
    controller = FileListController(gateway, filters=FileFilters(category="past-questions"))
    await controller.set_search("CSC101")
    await controller.set_sort("fileName:asc")

    assert controller.query().to_query() == {
        "category": "past-questions",
        "search": "CSC101",
        "sortBy": "fileName",
        "sortOrder": "asc",
        "page": 1,
    }
    assert seen[-1] == {"category": "past-questions", "search": "CSC101", "sortBy": "fileName",
                        "sortOrder": "asc", "page": "1"}


async def test_blocked_user_never_hits_the_network():
    calls = []
    gateway = make_api(
        RepositoryGateway,
        lambda request: calls.append(request) or httpx.Response(200, json=[]),
        session=make_session(user={**APPROVED_USER, "isApproved": False}),
    )
    controller = FileListController(gateway)
    await controller.load()

    assert calls == []
    assert controller.blocked_message == UNAPPROVED_MESSAGE


async def test_load_failure_sets_error_and_retry_recovers():
    responses = [httpx.Response(500, json={"error": "boom"}), httpx.Response(200, json=[file_json()])]
    gateway = make_api(RepositoryGateway, lambda request: responses.pop(0))
    controller = FileListController(gateway)

    await controller.load()
    assert controller.error == LOAD_ERROR_MESSAGE
    assert not controller.is_empty

    await controller.retry()
    assert controller.error is None
    assert [f.id for f in controller.files] == ["f-1"]


async def test_pagination_bounds():
    pages = []

    def handler(request):
        page = int(request.url.params.get("page", 1))
        pages.append(page)
        return httpx.Response(200, json=paged([file_json(f"f-{page}")], page=page, total_pages=2))

    controller = FileListController(make_api(RepositoryGateway, handler))
    await controller.load()
    await controller.previous_page()
    await controller.next_page()
    await controller.next_page()

    assert pages == [1, 2]
    assert controller.page == 2
    assert not controller.has_next_page


async def test_changing_filters_resets_page():
    controller = FileListController(make_api(
        RepositoryGateway, lambda request: httpx.Response(200, json=paged([], total_pages=5))
    ))
    controller.page = 3
    await controller.set_filters(level="300")
    assert controller.page == 1
    assert controller.filters.level == "300"


async def test_stale_responses_are_discarded():
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(request):
        if request.url.params.get("search") == "old":
            started.set()
            await release.wait()
            return httpx.Response(200, json=[file_json("old")])
        return httpx.Response(200, json=[file_json("new")])

    controller = FileListController(make_api(RepositoryGateway, handler))
    controller.search = "old"
    first = asyncio.ensure_future(controller.load())
    await started.wait()

    await controller.set_search("new")
    release.set()
    await first

    assert [f.id for f in controller.files] == ["new"]
    assert controller.loading is False


async def test_search_debounce_coalesces_keystrokes():
    searches = []

    def handler(request):
        searches.append(request.url.params.get("search"))
        return httpx.Response(200, json=[])

    controller = FileListController(make_api(RepositoryGateway, handler), search_debounce=0.05)
    for text in ("c", "cs", "csc"):
        await controller.set_search(text)
    await controller.wait_for_search()

    assert searches == ["csc"]


async def test_download_hands_bytes_to_save_callback():
    gateway = make_api(RepositoryGateway, lambda request: httpx.Response(200, content=b"pdf-bytes"))
    saved = []
    controller = FileListController(gateway)

    assert await controller.download(file_json_model(), lambda name, data: saved.append((name, data)))
    assert saved == [("notes.pdf", b"pdf-bytes")]


async def test_download_requires_approval():
    notices = []
    gateway = make_api(
        RepositoryGateway,
        lambda request: httpx.Response(200, content=b""),
        session=make_session(user={**APPROVED_USER, "isApproved": False}),
    )
    controller = FileListController(gateway, notifier=notices.append)

    assert not await controller.download(file_json_model(), lambda *a: None)
    assert notices == [DOWNLOAD_DENIED_MESSAGE]


async def test_delete_confirms_removes_locally_and_guards_reentry():
    deletes = []
    confirm_prompts = []
    gate_open = asyncio.Event()

    def handler(request):
        if request.method == "DELETE":
            deletes.append(request.url.path)
            return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json=paged([file_json("a"), file_json("b")]))

    async def confirm(message):
        confirm_prompts.append(message)
        await gate_open.wait()
        return True

    controller = FileListController(make_api(RepositoryGateway, handler), confirm=confirm)
    await controller.load()

    first = asyncio.ensure_future(controller.delete("a"))
    await asyncio.sleep(0)
    assert await controller.delete("a") is False
    gate_open.set()
    assert await first is True

    assert deletes == ["/api/repository/files/a"]
    assert confirm_prompts == [DELETE_CONFIRM_MESSAGE]
    assert [f.id for f in controller.files] == ["b"]
    assert controller.total_items == 1

    # already gone locally
    assert await controller.delete("a") is False
    assert deletes == ["/api/repository/files/a"]


async def test_delete_declined_or_failed_keeps_item():
    notices = []

    def handler(request):
        if request.method == "DELETE":
            return httpx.Response(500, json={"error": "disk error"})
        return httpx.Response(200, json=[file_json("a")])

    controller = FileListController(make_api(RepositoryGateway, handler), notifier=notices.append,
                                    confirm=lambda message: False)
    await controller.load()
    assert await controller.delete("a") is False

    controller.confirm = lambda message: True
    assert await controller.delete("a") is False
    assert notices == [DELETE_FAILED_MESSAGE]
    assert [f.id for f in controller.files] == ["a"]


async def test_delete_requires_complete_profile():
    notices = []
    session = make_session()
    controller = FileListController(make_api(
        RepositoryGateway, lambda request: httpx.Response(200, json=[file_json("a")]), session=session,
    ), notifier=notices.append)
    await controller.load()

    session.set_user({**APPROVED_USER, "address": ""})
    assert await controller.delete("a") is False
    assert notices and "complete your profile" in notices[0]
