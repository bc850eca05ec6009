# api/v1/endpoints/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.permissions import get_current_user
from models.user import User
from schemas.auth import (
    AccessTokenResponse,
    EmailRequest,
    ForgotPassword2FARequest,
    LoginRequest,
    LoginResponse,
    RegisterResponse,
    ResetPassword2FARequest,
    ResetPasswordRequest,
    TokenRequest,
    TwoFAResetResponse,
    TwoFASetupResponse,
    TwoFATokenRequest,
    VerifyCodeRequest,
)
from schemas.common import DataResponse, MessageResponse
from schemas.user import UserOut, UserRegister
from services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    await AuthService(db).register_user(data)
    return RegisterResponse(message="Registration successful. Check your email for the verification code.")


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    service = AuthService(db)
    user = await service.authenticate_user(data.email, data.password)
    access, refresh = await service.create_tokens(user)
    return LoginResponse(
        access_token=access,
        token=access,
        refresh_token=refresh,
        user=UserOut.from_user(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await AuthService(db).logout(user)
    return MessageResponse(message="User logged out successfully")


@router.get("/me", response_model=DataResponse)
async def me(user: User = Depends(get_current_user)):
    return DataResponse(data=UserOut.from_user(user).to_wire())


@router.get("/token", response_model=AccessTokenResponse)
async def refresh_access_token(
        authorization: Optional[str] = Header(None),
        db: AsyncSession = Depends(get_db),
):
    """Exchange the refresh token sent as a bearer credential for a new access token."""
    if not authorization:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Unauthorized, refresh token not provided")
    scheme, _, credential = authorization.partition(" ")
    if scheme != "Bearer" or not credential:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Invalid Token")

    access = await AuthService(db).refresh_access_token(credential)
    return AccessTokenResponse(access_token=access)


# ---------- email verification ----------
@router.post("/verify", response_model=MessageResponse)
async def verify_code(data: VerifyCodeRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).verify_code(data.email, data.code)
    return MessageResponse(message="Email verified successfully")


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(data: TokenRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).verify_email_token(data.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-code", response_model=MessageResponse)
async def resend_code(data: EmailRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).resend_code(data.email)
    return MessageResponse(message="Code resent.")


# ---------- password reset ----------
@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: EmailRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).forgot_password(data.email)
    return MessageResponse(message="Password reset email sent successfully")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).reset_password(data.token, data.new_password)
    return MessageResponse(message="Password reset successfully")


@router.post("/forgot-password-2fa", response_model=TwoFAResetResponse)
async def forgot_password_2fa(data: ForgotPassword2FARequest, db: AsyncSession = Depends(get_db)):
    reset_token = await AuthService(db).initiate_2fa_reset(data.email, data.phone_number)
    return TwoFAResetResponse(reset_token=reset_token)


@router.post("/reset-password-2fa", response_model=MessageResponse)
async def reset_password_2fa(data: ResetPassword2FARequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).complete_2fa_reset(
        data.reset_token, data.email_code, data.phone_code, data.new_password
    )
    return MessageResponse(message="Password reset successfully with 2FA verification")


# ---------- TOTP ----------
@router.post("/setup-2fa", response_model=TwoFASetupResponse)
async def setup_2fa(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    result = await AuthService(db).setup_2fa(user)
    return TwoFASetupResponse(**result)


@router.post("/verify-2fa", response_model=MessageResponse)
async def verify_2fa(data: TwoFATokenRequest, user: User = Depends(get_current_user),
                     db: AsyncSession = Depends(get_db)):
    await AuthService(db).enable_2fa(user, data.token)
    return MessageResponse(message="2FA enabled successfully")


@router.post("/disable-2fa", response_model=MessageResponse)
async def disable_2fa(data: TwoFATokenRequest, user: User = Depends(get_current_user),
                      db: AsyncSession = Depends(get_db)):
    await AuthService(db).disable_2fa(user, data.token)
    return MessageResponse(message="2FA disabled successfully")
