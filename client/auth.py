# client/auth.py
import logging
from typing import Any, Dict, Optional

from pydantic.alias_generators import to_camel

from client.http import ApiClient, ApiError
from client.types import UserProfile

logger = logging.getLogger(__name__)


class AuthClient(ApiClient):
    """Account, verification and 2FA calls.

    Every method returns the server's JSON body and raises ``ApiError`` with
    the server's message on failure.
    """

    def _remember(self, body: Dict[str, Any]) -> None:
        token = body.get("accessToken") or body.get("token")
        user = body.get("user")
        if token or user:
            self.session.save(token=token, user=user, refresh_token=body.get("refreshToken"))

    # ---------- account ----------
    async def register(self, first_name: str, last_name: str, email: str, password: str,
                       matric_number: str, department: str) -> Dict[str, Any]:
        body = await self.request_json("POST", "/auth/register", json={
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "matricNumber": matric_number,
            "department": department,
        }, authenticated=False)
        self._remember(body)
        return body

    async def login(self, email: str, password: str) -> UserProfile:
        body = await self.request_json(
            "POST", "/auth/login", json={"email": email, "password": password}, authenticated=False
        )
        self._remember(body)
        logger.info(f"Signed in as {email}")
        return UserProfile.model_validate(body.get("user") or {})

    async def logout(self) -> None:
        try:
            if self.session.token:
                await self.request("POST", "/auth/logout")
        except ApiError as e:
            logger.warning(f"Server logout failed, clearing local session anyway: {e.message}")
        finally:
            self.session.clear()

    async def me(self) -> UserProfile:
        body = await self.request_json("GET", "/auth/me")
        user = UserProfile.model_validate(body.get("data") or {})
        self.session.set_user(user)
        return user

    async def refresh(self) -> str:
        refresh_token = self.session.refresh_token
        if not refresh_token:
            raise ApiError("Unauthorized, refresh token not provided", 403)
        body = await self.request_json(
            "GET",
            "/auth/token",
            headers={"Authorization": f"Bearer {refresh_token}"},
            authenticated=False,
        )
        token = body["accessToken"]
        self.session.save(token=token)
        return token

    # ---------- verification ----------
    async def verify(self, email: str, code: str) -> Dict[str, Any]:
        return await self.request_json(
            "POST", "/auth/verify", json={"email": email, "code": code}, authenticated=False
        )

    async def verify_email(self, token: str) -> Dict[str, Any]:
        return await self.request_json(
            "POST", "/auth/verify-email", json={"token": token}, authenticated=False
        )

    async def resend_code(self, email: str) -> Dict[str, Any]:
        return await self.request_json(
            "POST", "/auth/resend-code", json={"email": email}, authenticated=False
        )

    # ---------- password reset ----------
    async def forgot_password(self, email: str) -> Dict[str, Any]:
        return await self.request_json(
            "POST", "/auth/forgot-password", json={"email": email}, authenticated=False
        )

    async def reset_password(self, token: str, new_password: str) -> Dict[str, Any]:
        return await self.request_json(
            "POST",
            "/auth/reset-password",
            json={"token": token, "newPassword": new_password},
            authenticated=False,
        )

    async def forgot_password_2fa(self, email: str, phone_number: str) -> str:
        body = await self.request_json(
            "POST",
            "/auth/forgot-password-2fa",
            json={"email": email, "phoneNumber": phone_number},
            authenticated=False,
        )
        return body["resetToken"]

    async def reset_password_2fa(self, reset_token: str, email_code: str, phone_code: str,
                                 new_password: str) -> Dict[str, Any]:
        return await self.request_json("POST", "/auth/reset-password-2fa", json={
            "resetToken": reset_token,
            "emailCode": email_code,
            "phoneCode": phone_code,
            "newPassword": new_password,
        }, authenticated=False)

    # ---------- TOTP ----------
    async def setup_2fa(self) -> Dict[str, Any]:
        return await self.request_json("POST", "/auth/setup-2fa")

    async def verify_2fa(self, token: str) -> Dict[str, Any]:
        return await self.request_json("POST", "/auth/verify-2fa", json={"token": token})

    async def disable_2fa(self, token: str) -> Dict[str, Any]:
        return await self.request_json("POST", "/auth/disable-2fa", json={"token": token})

    # ---------- profile ----------
    async def update_profile(self, **changes: Optional[str]) -> UserProfile:
        payload = {
            to_camel(k): v
            for k, v in changes.items()
        }
        body = await self.request_json("PUT", "/users/profile", json=payload)
        user = UserProfile.model_validate(body.get("data") or {})
        self.session.set_user(user)
        return user
