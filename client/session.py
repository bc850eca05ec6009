# client/session.py
import json
import logging
import os
from typing import Dict, Optional, Protocol, Union

from client.types import UserProfile

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"


class SessionStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemorySessionStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileSessionStore:
    """Key/value pairs persisted as one JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


class Session:
    """Token and user record shared by every client object built on it."""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store if store is not None else MemorySessionStore()

    @property
    def token(self) -> Optional[str]:
        return self.store.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.store.get(REFRESH_TOKEN_KEY)

    @property
    def user(self) -> Optional[UserProfile]:
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            return UserProfile.model_validate(json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed stored user: {e}")
            return None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def save(
            self,
            token: Optional[str] = None,
            user: Union[UserProfile, dict, None] = None,
            refresh_token: Optional[str] = None,
    ) -> None:
        if token:
            self.store.set(ACCESS_TOKEN_KEY, token)
        if refresh_token:
            self.store.set(REFRESH_TOKEN_KEY, refresh_token)
        if user is not None:
            self.set_user(user)

    def set_user(self, user: Union[UserProfile, dict]) -> None:
        if isinstance(user, dict):
            user = UserProfile.model_validate(user)
        self.store.set(USER_KEY, user.model_dump_json(by_alias=True))

    def clear(self) -> None:
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            self.store.remove(key)

    def auth_headers(self) -> Dict[str, str]:
        token = self.token
        return {"Authorization": f"Bearer {token}"} if token else {}
