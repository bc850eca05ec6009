import os

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import (
    STUDENT,
    approved_student,
    login,
    make_admin,
    register_verified,
    set_file_fields,
    set_user_fields,
)

PDF = b"%PDF-1.4 lecture notes"
OTHER_STUDENT = {
    "firstName": "Chidi",
    "lastName": "Eze",
    "email": "eze54321@run.edu.ng",
    "matricNumber": "RUN/CYB/22/54321",
    "department": "Cyber Security",
}


def upload(client, headers, name="notes.pdf", content=PDF, mime="application/pdf", **fields):
    data = {
        "category": "past-questions",
        "department": "cs",
        "level": "200",
        "semester": "first",
        **fields,
    }
    return client.post(
        "/api/repository/upload",
        data={k: v for k, v in data.items() if v is not None},
        files={"file": (name, content, mime)},
        headers=headers,
    )


def test_unapproved_user_cannot_list(client, outbox):
    register_verified(client, outbox)
    headers = login(client, STUDENT["email"], STUDENT["password"])
    response = client.get("/api/repository/files", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"].startswith("You are not approved to access the repository")


def test_listing_requires_authentication(client):
    assert client.get("/api/repository/files").status_code == 401


def test_incomplete_profile_can_list_but_not_upload(client, outbox):
    headers = approved_student(client, outbox, complete_profile=False)
    assert client.get("/api/repository/files", headers=headers).status_code == 200

    response = upload(client, headers)
    assert response.status_code == 403
    assert response.json()["error"].startswith("Please complete your profile")


def test_upload_stores_file_and_metadata(client, outbox):
    headers = approved_student(client, outbox)
    response = upload(
        client, headers,
        courseCode="csc101", courseTitle="Intro to Computing", tags="Exam, CSC101 ,  ",
        semester="Harmattan",
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "File uploaded successfully"

    data = body["data"]
    assert data["fileName"] == "notes.pdf"
    assert data["courseCode"] == "CSC101"
    assert data["courseInfo"] == "CSC101 - Intro to Computing"
    assert data["tags"] == ["exam", "csc101"]
    assert data["semester"] == "first"
    assert data["fileTypeCategory"] == "document"
    assert data["fileSize"] == len(PDF)
    assert data["isApproved"] is False
    assert data["fileUrl"] == f"/api/repository/download/{data['id']}"
    assert len(data["checksum"]) == 64
    assert "filePath" not in data


def test_upload_validation_errors(client, outbox):
    headers = approved_student(client, outbox)

    wrong_type = upload(client, headers, name="clip.mp4", mime="video/mp4")
    assert wrong_type.status_code == 400
    assert wrong_type.json()["error"] == \
        "File type not allowed. Allowed types: pdf, doc, docx, txt, jpg, jpeg, png"

    missing = upload(client, headers, category=None)
    assert missing.status_code == 400
    assert missing.json()["error"] == "Missing required fields: category"

    unknown = upload(client, headers, category="memes")
    assert unknown.status_code == 400

    bad_level = upload(client, headers, level="700")
    assert bad_level.status_code == 400


def test_unapproved_files_are_visible_to_owner_and_admin_only(client, outbox):
    owner = approved_student(client, outbox)
    file_id = upload(client, owner).json()["data"]["id"]
    other = approved_student(client, outbox, **OTHER_STUDENT)
    admin = make_admin(client)

    assert client.get("/api/repository/files", headers=other).json()["data"] == []
    assert client.get(f"/api/repository/files/{file_id}", headers=other).status_code == 403
    assert len(client.get("/api/repository/files", headers=owner).json()["data"]) == 1
    assert len(client.get("/api/repository/files", headers=admin).json()["data"]) == 1

    approved = client.post(f"/api/admin/files/{file_id}/approve", headers=admin)
    assert approved.status_code == 200
    assert approved.json()["data"]["isApproved"] is True

    listed = client.get("/api/repository/files", headers=other).json()["data"]
    assert [f["id"] for f in listed] == [file_id]


def test_moderator_uploads_are_approved_immediately(client, outbox):
    headers = approved_student(client, outbox)
    set_user_fields(client, STUDENT["email"], role="moderator")
    assert upload(client, headers).json()["data"]["isApproved"] is True


def test_moderators_see_pending_files_in_listings(client, outbox):
    owner = approved_student(client, outbox)
    file_id = upload(client, owner).json()["data"]["id"]
    moderator = approved_student(client, outbox, **OTHER_STUDENT)
    set_user_fields(client, OTHER_STUDENT["email"], role="moderator")

    assert client.get(f"/api/repository/files/{file_id}", headers=moderator).status_code == 200
    listed = client.get("/api/repository/files", headers=moderator).json()["data"]
    assert [f["id"] for f in listed] == [file_id]
    assert listed[0]["isApproved"] is False


def test_filter_search_sort_and_paginate(client, outbox):
    headers = approved_student(client, outbox)
    upload(client, headers, name="b-calculus.pdf", courseCode="MTH101")
    upload(client, headers, name="a-algorithms.pdf", courseCode="CSC201", level="300")
    upload(client, headers, name="c-slides.pptx", category="slides",
           mime="application/vnd.openxmlformats-officedocument.presentationml.presentation")

    by_name = client.get(
        "/api/repository/files",
        params={"category": "past-questions", "sortBy": "fileName", "sortOrder": "asc"},
        headers=headers,
    ).json()
    assert [f["fileName"] for f in by_name["data"]] == ["a-algorithms.pdf", "b-calculus.pdf"]
    assert by_name["pagination"]["totalItems"] == 2

    searched = client.get("/api/repository/search", params={"q": "mth101"}, headers=headers).json()
    assert [f["fileName"] for f in searched["data"]] == ["b-calculus.pdf"]

    by_level = client.get("/api/repository/files", params={"level": "300"}, headers=headers).json()
    assert [f["fileName"] for f in by_level["data"]] == ["a-algorithms.pdf"]

    presentations = client.get(
        "/api/repository/files", params={"fileType": "presentation"}, headers=headers
    ).json()
    assert [f["fileName"] for f in presentations["data"]] == ["c-slides.pptx"]

    page = client.get(
        "/api/repository/files",
        params={"limit": 2, "page": 2, "sortBy": "fileName", "sortOrder": "asc"},
        headers=headers,
    ).json()
    assert [f["fileName"] for f in page["data"]] == ["c-slides.pptx"]
    assert page["pagination"] == {
        "currentPage": 2,
        "totalPages": 2,
        "totalItems": 3,
        "itemsPerPage": 2,
        "hasNextPage": False,
        "hasPrevPage": True,
    }

    category = client.get("/api/repository/category/slides", headers=headers).json()
    assert len(category["data"]) == 1
    department = client.get("/api/repository/department/cs", headers=headers).json()
    assert len(department["data"]) == 3


def test_multimedia_listing(client, outbox):
    headers = approved_student(client, outbox)
    upload(client, headers)
    upload(client, headers, name="lecture.mp4", content=b"\x00\x00video", mime="video/mp4", category="videos")

    listed = client.get("/api/repository/multimedia", headers=headers).json()["data"]
    assert [f["fileName"] for f in listed] == ["lecture.mp4"]
    assert listed[0]["fileTypeCategory"] == "video"


def test_download_streams_bytes_and_counts(client, outbox):
    headers = approved_student(client, outbox)
    file_id = upload(client, headers, name="past questions.pdf").json()["data"]["id"]

    response = client.get(f"/api/repository/download/{file_id}", headers=headers)
    assert response.status_code == 200
    assert response.content == PDF
    assert response.headers["content-disposition"] == \
        "attachment; filename*=UTF-8''past%20questions.pdf"

    legacy = client.get(f"/api/files/repository/files/{file_id}/download", headers=headers)
    assert legacy.content == PDF

    info = client.get(f"/api/repository/files/{file_id}", headers=headers).json()["data"]
    assert info["downloadCount"] == 2
    assert info["viewCount"] == 1


def test_like_increments(client, outbox):
    headers = approved_student(client, outbox)
    file_id = upload(client, headers).json()["data"]["id"]
    client.post(f"/api/repository/files/{file_id}/like", headers=headers)
    response = client.post(f"/api/repository/files/{file_id}/like", headers=headers)
    assert response.json()["data"]["likeCount"] == 2


def test_update_ignores_immutable_fields(client, outbox):
    owner = approved_student(client, outbox)
    created = upload(client, owner).json()["data"]

    response = client.put(
        f"/api/repository/files/{created['id']}",
        json={"description": "Updated", "tags": "Revision, Exam", "fileName": "hacked.exe",
              "checksum": "0", "uploadBy": "someone-else"},
        headers=owner,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["description"] == "Updated"
    assert data["tags"] == ["revision", "exam"]
    assert data["fileName"] == "notes.pdf"
    assert data["checksum"] == created["checksum"]
    assert data["uploadBy"] == created["uploadBy"]

    bad_move = client.put(
        f"/api/repository/files/{created['id']}", json={"category": "videos"}, headers=owner
    )
    assert bad_move.status_code == 400


def test_move_respects_target_category_size_cap(client, outbox):
    owner = approved_student(client, outbox)
    file_id = upload(client, owner).json()["data"]["id"]
    set_file_fields(client, file_id, file_size=31 * 1024 * 1024)

    too_big = client.put(f"/api/repository/files/{file_id}", json={"category": "articles"}, headers=owner)
    assert too_big.status_code == 400
    assert too_big.json()["error"] == "File too large for articles. Maximum size: 30 MB"

    fits = client.put(f"/api/repository/files/{file_id}", json={"category": "journals"}, headers=owner)
    assert fits.status_code == 200
    assert fits.json()["data"]["category"] == "journals"


def test_only_owner_or_admin_may_update_or_delete(client, outbox, tmp_path):
    owner = approved_student(client, outbox)
    file_id = upload(client, owner).json()["data"]["id"]
    admin = make_admin(client)
    client.post(f"/api/admin/files/{file_id}/approve", headers=admin)
    other = approved_student(client, outbox, **OTHER_STUDENT)

    assert client.put(f"/api/repository/files/{file_id}", json={"description": "x"},
                      headers=other).status_code == 403
    assert client.delete(f"/api/repository/files/{file_id}", headers=other).status_code == 403

    stored = [os.path.join(root, name) for root, _, names in os.walk(tmp_path / "uploads") for name in names]
    assert len(stored) == 1

    response = client.delete(f"/api/repository/files/{file_id}", headers=owner)
    assert response.json() == {"success": True, "message": "File deleted successfully"}
    assert not os.path.exists(stored[0])
    assert client.get(f"/api/repository/files/{file_id}", headers=owner).status_code == 404
    assert client.delete(f"/api/repository/files/{file_id}", headers=owner).status_code == 404


def test_failed_delete_keeps_stored_bytes(client, outbox, tmp_path, monkeypatch):
    owner = approved_student(client, outbox)
    file_id = upload(client, owner).json()["data"]["id"]
    stored = [os.path.join(root, name) for root, _, names in os.walk(tmp_path / "uploads") for name in names]

    async def failing_commit(self):
        raise RuntimeError("database unavailable")

    with monkeypatch.context() as patched:
        patched.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            client.delete(f"/api/repository/files/{file_id}", headers=owner)

    assert os.path.exists(stored[0])
    assert client.get(f"/api/repository/files/{file_id}", headers=owner).status_code == 200


def test_categories_and_stats(client, outbox):
    headers = approved_student(client, outbox)
    registry = client.get("/api/repository/categories").json()["data"]
    assert len(registry["categories"]) == 16
    images = next(c for c in registry["categories"] if c["name"] == "images")
    assert images["maxFileSize"] == 20 * 1024 * 1024
    assert [d["code"] for d in registry["departments"]] == ["cs", "se", "it", "ce", "general"]

    upload(client, headers)
    upload(client, headers, name="photo.png", content=b"\x89PNG" + b"0" * 1020, mime="image/png",
           category="images")

    stats = client.get("/api/repository/stats", headers=headers).json()["data"]
    assert stats["overview"]["totalFiles"] == 2
    assert stats["overview"]["totalSize"] == len(PDF) + 1024
    assert {row["id"]: row["count"] for row in stats["byCategory"]} == {"past-questions": 1, "images": 1}


def test_admin_user_access_management(client, outbox):
    register_verified(client, outbox)
    student = login(client, STUDENT["email"], STUDENT["password"])
    user_id = client.get("/api/auth/me", headers=student).json()["data"]["id"]
    admin = make_admin(client)

    assert client.get("/api/admin/users", headers=student).status_code == 403

    pending = client.get("/api/admin/users", params={"approved": "false"}, headers=admin).json()
    assert [u["email"] for u in pending["data"]] == [STUDENT["email"]]

    approved = client.post(f"/api/admin/users/{user_id}/approve", headers=admin).json()["data"]
    assert approved["isApproved"] is True and approved["canAccessRepository"] is True
    assert client.get("/api/repository/files", headers=student).status_code == 200

    client.post(f"/api/admin/users/{user_id}/revoke", headers=admin)
    assert client.get("/api/repository/files", headers=student).status_code == 403
