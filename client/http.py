# client/http.py
import logging
from typing import Any, Dict, Optional

import httpx

from client.config import ClientSettings, get_client_settings
from client.session import Session

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        return self.message


def error_message(response: httpx.Response) -> str:
    """The server's `error`, else `message`, else a generic failure text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status {response.status_code}"


class ApiClient:
    """Async HTTP wrapper shared by the repository and auth clients."""

    def __init__(
            self,
            session: Optional[Session] = None,
            base_url: Optional[str] = None,
            client: Optional[httpx.AsyncClient] = None,
            transport: Optional[httpx.AsyncBaseTransport] = None,
            settings: Optional[ClientSettings] = None,
    ):
        settings = settings or get_client_settings()
        self.session = session or Session()
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(transport=transport, timeout=settings.REQUEST_TIMEOUT)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
            self,
            method: str,
            path: str,
            *,
            params: Optional[Dict[str, Any]] = None,
            json: Any = None,
            data: Optional[Dict[str, Any]] = None,
            files: Any = None,
            headers: Optional[Dict[str, str]] = None,
            authenticated: bool = True,
    ) -> httpx.Response:
        request_headers = dict(self.session.auth_headers()) if authenticated else {}
        request_headers.update(headers or {})

        try:
            response = await self.client.request(
                method,
                self._url(path),
                params=params,
                json=json,
                data=data,
                files=files,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Network error: {e}") from e

        if response.is_error:
            message = error_message(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise ApiError(message, response.status_code)

        return response

    async def request_json(self, method: str, path: str, **kwargs) -> Any:
        response = await self.request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned an unparseable body")
            raise ApiError("Invalid response from server", response.status_code) from e
