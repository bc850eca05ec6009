# schemas/auth.py
from typing import Optional

from pydantic import EmailStr, Field

from schemas.common import CamelModel
from schemas.user import UserOut


class LoginRequest(CamelModel):
    # email address or matric number
    email: str
    password: str


class VerifyCodeRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None


class EmailRequest(CamelModel):
    email: EmailStr


class TokenRequest(CamelModel):
    token: str


class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str = Field(..., min_length=6)


class ForgotPassword2FARequest(CamelModel):
    email: EmailStr
    phone_number: str


class ResetPassword2FARequest(CamelModel):
    reset_token: str
    email_code: str
    phone_code: str
    new_password: str = Field(..., min_length=6)


class TwoFATokenRequest(CamelModel):
    token: str


class LoginResponse(CamelModel):
    success: bool = True
    message: str = "Login successful"
    access_token: str
    token: str
    refresh_token: str
    user: UserOut


class AccessTokenResponse(CamelModel):
    success: bool = True
    message: str = "New access token generated successfully"
    access_token: str


class RegisterResponse(CamelModel):
    success: bool = True
    message: str
    redirect_to: str = "/verify"


class TwoFASetupResponse(CamelModel):
    success: bool = True
    message: str = "2FA setup initiated"
    qr_code: str
    secret: str
    otpauth_url: str


class TwoFAResetResponse(CamelModel):
    success: bool = True
    message: str = "2FA verification codes sent to your email and phone"
    reset_token: str
