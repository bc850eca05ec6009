# client/wizards.py
import asyncio
import enum
import inspect
import logging
import re
from typing import Awaitable, Callable, Optional, Union

from client.auth import AuthClient
from client.http import ApiError

logger = logging.getLogger(__name__)

SUCCESS_DELAY = 2.0
CODE_PATTERN = re.compile(r"^\d{6}$")
MIN_PASSWORD_LENGTH = 6

INVALID_CODE_MESSAGE = "Please enter a valid 6-digit code"
PASSWORD_MISMATCH_MESSAGE = "Passwords do not match"
PASSWORD_TOO_SHORT_MESSAGE = "Password must be at least 6 characters long"
GENERIC_ERROR_MESSAGE = "An error occurred"

SuccessCallback = Callable[[], Union[None, Awaitable[None]]]
Sleeper = Callable[[float], Awaitable[None]]


class SetupStep(str, enum.Enum):
    SETUP = "setup"
    VERIFY = "verify"
    SUCCESS = "success"


class ResetStep(str, enum.Enum):
    INITIATE = "initiate"
    VERIFY = "verify"
    SUCCESS = "success"


class _Wizard:
    def __init__(self, auth: AuthClient, on_success: Optional[SuccessCallback] = None,
                 delay: float = SUCCESS_DELAY, sleep: Sleeper = asyncio.sleep):
        self.auth = auth
        self.on_success = on_success
        self.delay = delay
        self._sleep = sleep
        self.error: Optional[str] = None
        self.loading = False

    async def _finish(self) -> None:
        await self._sleep(self.delay)
        if self.on_success is not None:
            result = self.on_success()
            if inspect.isawaitable(result):
                await result

    def _fail(self, e: ApiError, fallback: str) -> None:
        self.error = e.message or fallback
        logger.warning(f"{type(self).__name__} step failed: {self.error}")


class Setup2FAWizard(_Wizard):
    """setup -> verify -> success for enabling TOTP on the signed-in account."""

    def __init__(self, auth: AuthClient, **kwargs):
        super().__init__(auth, **kwargs)
        self.step = SetupStep.SETUP
        self.qr_code: Optional[str] = None
        self.secret: Optional[str] = None
        self.otpauth_url: Optional[str] = None

    async def start(self) -> bool:
        self.step = SetupStep.SETUP
        self.error = None
        self.loading = True
        try:
            body = await self.auth.setup_2fa()
        except ApiError as e:
            self._fail(e, "Failed to setup 2FA")
            return False
        finally:
            self.loading = False
        self.qr_code = body.get("qrCode")
        self.secret = body.get("secret")
        self.otpauth_url = body.get("otpauthUrl")
        return True

    def proceed_to_verify(self) -> None:
        if self.step == SetupStep.SETUP and self.secret:
            self.step = SetupStep.VERIFY

    def back(self) -> None:
        if self.step == SetupStep.VERIFY:
            self.step = SetupStep.SETUP
            self.error = None

    async def submit(self, code: str) -> bool:
        if self.step != SetupStep.VERIFY:
            return False
        code = (code or "").strip()
        if not CODE_PATTERN.match(code):
            self.error = INVALID_CODE_MESSAGE
            return False

        self.error = None
        self.loading = True
        try:
            await self.auth.verify_2fa(code)
        except ApiError as e:
            self._fail(e, "Failed to verify 2FA")
            return False
        finally:
            self.loading = False

        self.step = SetupStep.SUCCESS
        await self._finish()
        return True


class PasswordReset2FAWizard(_Wizard):
    """initiate -> verify -> success for resetting a password with email and SMS codes."""

    def __init__(self, auth: AuthClient, **kwargs):
        super().__init__(auth, **kwargs)
        self.step = ResetStep.INITIATE
        self.email: Optional[str] = None
        self.phone_number: Optional[str] = None
        self.reset_token: Optional[str] = None

    async def initiate(self, email: str, phone_number: str) -> bool:
        self.error = None
        self.loading = True
        try:
            self.reset_token = await self.auth.forgot_password_2fa(email, phone_number)
        except ApiError as e:
            self._fail(e, "Failed to initiate reset")
            return False
        finally:
            self.loading = False
        self.email = email
        self.phone_number = phone_number
        self.step = ResetStep.VERIFY
        return True

    def back(self) -> None:
        if self.step == ResetStep.VERIFY:
            self.step = ResetStep.INITIATE
            self.error = None

    async def submit(self, email_code: str, phone_code: str, new_password: str,
                     confirm_password: str) -> bool:
        if self.step != ResetStep.VERIFY:
            return False
        self.error = None
        if new_password != confirm_password:
            self.error = PASSWORD_MISMATCH_MESSAGE
            return False
        if len(new_password) < MIN_PASSWORD_LENGTH:
            self.error = PASSWORD_TOO_SHORT_MESSAGE
            return False

        self.loading = True
        try:
            await self.auth.reset_password_2fa(self.reset_token, email_code, phone_code, new_password)
        except ApiError as e:
            self._fail(e, "Failed to reset password")
            return False
        finally:
            self.loading = False

        self.step = ResetStep.SUCCESS
        await self._finish()
        return True
