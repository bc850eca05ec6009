import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-repository")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["SMS_PROVIDER"] = "console"

import re
from typing import Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from client.session import MemorySessionStore, Session
from core.config import settings
from core.database import AsyncSessionLocal
from main import app
from models.repository_file import RepositoryFile
from models.user import User
from scripts.create_admin import create_admin
from services import messaging_service

CODE_RE = re.compile(r"\b(\d{6})\b")

STUDENT = {
    "firstName": "Ada",
    "lastName": "Obi",
    "email": "obi12345@run.edu.ng",
    "password": "secret1",
    "matricNumber": "RUN/CSC/21/12345",
    "department": "Computer Science",
}

COMPLETE_PROFILE = {
    "level": "200",
    "semester": "first",
    "phone": "+2348012345678",
    "address": "Hall 3, Redeemer's University",
}


@pytest.fixture
def outbox(monkeypatch) -> List[Dict[str, str]]:
    sent = []

    async def fake_send_email(to, subject, body):
        sent.append({"to": to, "subject": subject, "body": body})

    async def fake_send_sms(phone, message):
        sent.append({"to": phone, "subject": "sms", "body": message})

    monkeypatch.setattr(messaging_service, "send_email", fake_send_email)
    monkeypatch.setattr(messaging_service, "send_sms", fake_send_sms)
    return sent


@pytest.fixture
def client(tmp_path, monkeypatch, outbox):
    monkeypatch.setattr(settings, "FILE_STORAGE_PATH", str(tmp_path / "uploads"))
    with TestClient(app) as c:
        yield c


def last_code(outbox, to: str) -> str:
    for message in reversed(outbox):
        if message["to"] == to:
            match = CODE_RE.search(message["body"])
            if match:
                return match.group(1)
    raise AssertionError(f"no code sent to {to}")


def register(client, **overrides) -> dict:
    payload = {**STUDENT, **overrides}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return payload


def register_verified(client, outbox, **overrides) -> dict:
    payload = register(client, **overrides)
    response = client.post(
        "/api/auth/verify",
        json={"email": payload["email"], "code": last_code(outbox, payload["email"])},
    )
    assert response.status_code == 200, response.text
    return payload


def login(client, email: str, password: str) -> Dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


def make_admin(client, email="admin00000@run.edu.ng", password="adminpass") -> Dict[str, str]:
    async def _create():
        async with AsyncSessionLocal() as db:
            await create_admin(db, email, password, "Repo", "Admin", "RUN/ADM/00/00000")

    client.portal.call(_create)
    return login(client, email, password)


def set_user_fields(client, email: str, **fields) -> None:
    async def _update():
        async with AsyncSessionLocal() as db:
            user = (await db.execute(select(User).where(User.email == email))).scalar_one()
            for key, value in fields.items():
                setattr(user, key, value)
            await db.commit()

    client.portal.call(_update)


def set_file_fields(client, file_id: str, **fields) -> None:
    async def _update():
        async with AsyncSessionLocal() as db:
            stored = (await db.execute(select(RepositoryFile).where(RepositoryFile.uuid == file_id))).scalar_one()
            for key, value in fields.items():
                setattr(stored, key, value)
            await db.commit()

    client.portal.call(_update)


def approved_student(client, outbox, complete_profile=True, **overrides) -> Dict[str, str]:
    """Register, verify, approve and sign in a student; returns auth headers."""
    payload = register_verified(client, outbox, **overrides)
    set_user_fields(client, payload["email"], is_approved=True, can_access_repository=True)
    headers = login(client, payload["email"], payload["password"])
    if complete_profile:
        response = client.put("/api/users/profile", json=COMPLETE_PROFILE, headers=headers)
        assert response.status_code == 200, response.text
    return headers


# ---------- client side ----------
APPROVED_USER = {
    "id": "u-1",
    "firstName": "Ada",
    "lastName": "Obi",
    "email": STUDENT["email"],
    "department": "cs",
    "level": "200",
    "semester": "first",
    "phone": "+2348012345678",
    "address": "Hall 3",
    "role": "user",
    "isApproved": True,
    "isVerified": True,
    "canAccessRepository": True,
}


def file_json(file_id="f-1", file_name="notes.pdf", **fields) -> dict:
    return {
        "id": file_id,
        "fileName": file_name,
        "fileUrl": f"/api/repository/download/{file_id}",
        "fileType": "application/pdf",
        "fileSize": 2048,
        "category": "past-questions",
        "department": "cs",
        "level": "200",
        "semester": "first",
        "tags": [],
        "isApproved": True,
        "uploadBy": "u-1",
        **fields,
    }


def make_session(user=APPROVED_USER, token="access-token", refresh_token=None) -> Session:
    session = Session(MemorySessionStore())
    session.save(token=token, user=user, refresh_token=refresh_token)
    return session


def make_api(cls, handler, session=None):
    return cls(
        session=session or make_session(),
        base_url="http://testserver/api",
        transport=httpx.MockTransport(handler),
    )
