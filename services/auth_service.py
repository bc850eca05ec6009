# services/auth_service.py
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from models.user import User
from models.verification import VerificationCode, VerificationPurpose
from schemas.user import MATRIC_PATTERN, ProfileUpdate, UserRegister
from services import messaging_service
from services.messaging_service import MessagingError
from services.twofa_service import TwoFAService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------
    # REGISTER
    # ------------------------------------------------
    async def register_user(self, data: UserRegister) -> User:
        if data.department not in settings.ALLOWED_DEPARTMENTS:
            logger.warning(f"Registration failed: invalid department ({data.department}) for {data.email}")
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid department")

        expected_email = self.expected_email(data.last_name, data.matric_number)
        email = data.email.strip().lower()
        if email != expected_email:
            logger.warning(f"Registration failed: email {email}, expected {expected_email}")
            raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Email must be {expected_email}")

        if await self._get_by_email(email):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User with this email already exists")

        existing = await self.db.execute(select(User).where(User.matric_number == data.matric_number))
        if existing.scalar_one_or_none():
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User with matric number already exists")

        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=email,
            matric_number=data.matric_number,
            department=data.department,
            hashed_password=hash_password(data.password),
            is_verified=False,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        await self._send_verification(user)
        logger.info(f"User registered: {user.email}")
        return user

    @staticmethod
    def expected_email(last_name: str, matric_number: str) -> str:
        return f"{last_name.strip().lower()}{matric_number[-5:]}@{settings.ALLOWED_EMAIL_DOMAIN}"

    async def _send_verification(self, user: User) -> None:
        await self._invalidate(user, VerificationPurpose.EMAIL_CODE, VerificationPurpose.EMAIL_LINK)
        code = TwoFAService.generate_verification_code()
        link_token = TwoFAService.generate_reset_token()
        self._issue(user, VerificationPurpose.EMAIL_CODE, code,
                    timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES))
        self._issue(user, VerificationPurpose.EMAIL_LINK, link_token,
                    timedelta(hours=settings.EMAIL_TOKEN_EXPIRE_HOURS))
        await self.db.commit()

        # registration still succeeds when delivery fails; the user can ask for a resend
        try:
            await messaging_service.send_email(
                user.email,
                "Your RUNACOSS Verification Code",
                messaging_service.verification_email(user.first_name, code, link_token),
            )
        except MessagingError as e:
            logger.error(f"Verification email to {user.email} failed: {e}")

    # ------------------------------------------------
    # EMAIL VERIFICATION
    # ------------------------------------------------
    async def verify_code(self, email: Optional[str], code: Optional[str]) -> User:
        if not email or not code:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email and code are required.")

        user = await self._get_by_email(email.strip().lower())
        if not user:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User not found")
        if user.is_verified:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User already verified")

        record = await self._find_code(user, VerificationPurpose.EMAIL_CODE, code)
        if not record:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired code")

        record.consumed_at = datetime.utcnow()
        user.is_verified = True
        await self.db.commit()
        logger.info(f"Email verified by code: {user.email}")
        return user

    async def resend_code(self, email: str) -> None:
        user = await self._get_by_email(email.strip().lower())
        if not user:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User not found")
        if user.is_verified:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User is already verified")
        await self._send_verification(user)

    async def verify_email_token(self, token: str) -> User:
        record = await self._find_token(VerificationPurpose.EMAIL_LINK, token)
        if not record:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired verification token")

        user = await self.db.get(User, record.user_id)
        record.consumed_at = datetime.utcnow()
        user.is_verified = True
        await self.db.commit()
        logger.info(f"Email verified by link: {user.email}")
        return user

    # ------------------------------------------------
    # LOGIN
    # ------------------------------------------------
    async def authenticate_user(self, identifier: str, password: str) -> User:
        identifier = (identifier or "").strip()
        conditions = [User.email == identifier.lower()]
        if MATRIC_PATTERN.match(identifier):
            conditions.append(User.matric_number == identifier.upper())

        result = await self.db.execute(select(User).where(or_(*conditions)))
        user = result.scalars().first()

        if not user:
            logger.warning(f"[LOGIN] User not found: {identifier}")
            raise HTTPException(status.HTTP_404_NOT_FOUND, "User does not exist")

        if not user.is_verified:
            logger.warning(f"[LOGIN] Email not verified: {identifier}")
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Email not verified")

        if not verify_password(password, user.hashed_password):
            logger.warning(f"[LOGIN] Incorrect password for: {identifier}")
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Incorrect password")

        if not user.is_active:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Account disabled")

        user.last_login_at = datetime.utcnow()
        await self.db.commit()
        return user

    # ------------------------------------------------
    # TOKEN
    # ------------------------------------------------
    async def create_tokens(self, user: User) -> Tuple[str, str]:
        access = create_access_token(subject=user.uuid, extra_data={"role": user.role})
        refresh = create_refresh_token(subject=user.uuid)

        # rotation
        user.refresh_token = refresh
        await self.db.commit()
        return access, refresh

    async def refresh_access_token(self, refresh_token: Optional[str]) -> str:
        if not refresh_token:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Unauthorized, refresh token not provided")

        uid = decode_token(refresh_token, expected_type="refresh")
        result = await self.db.execute(
            select(User).where(and_(User.uuid == uid, User.refresh_token == refresh_token))
        )
        user = result.scalar_one_or_none()
        if not user or not user.is_active:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Invalid token")

        return create_access_token(subject=user.uuid, extra_data={"role": user.role})

    async def logout(self, user: User) -> None:
        user.refresh_token = None
        await self.db.commit()
        logger.info(f"User logged out: {user.email}")

    # ------------------------------------------------
    # PASSWORD RESET (email link)
    # ------------------------------------------------
    async def forgot_password(self, email: str) -> None:
        user = await self._get_by_email(email.strip().lower())
        if not user:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "User with this email does not exist")

        await self._invalidate(user, VerificationPurpose.PASSWORD_RESET)
        token = TwoFAService.generate_reset_token()
        self._issue(user, VerificationPurpose.PASSWORD_RESET, token,
                    timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES))
        await self.db.commit()

        try:
            await messaging_service.send_email(
                user.email,
                "Reset Your RUNACOSS Password",
                messaging_service.password_reset_email(user.first_name, token),
            )
        except MessagingError as e:
            logger.error(f"Password reset email to {user.email} failed: {e}")
            raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send password reset email")

    async def reset_password(self, token: str, new_password: str) -> None:
        record = await self._find_token(VerificationPurpose.PASSWORD_RESET, token)
        if not record:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired reset token")

        user = await self.db.get(User, record.user_id)
        user.hashed_password = hash_password(new_password)
        user.refresh_token = None
        record.consumed_at = datetime.utcnow()
        await self.db.commit()
        logger.info(f"Password reset via email link: {user.email}")

    # ------------------------------------------------
    # PASSWORD RESET (email + phone codes)
    # ------------------------------------------------
    async def initiate_2fa_reset(self, email: str, phone_number: str) -> str:
        user = await self._get_by_email(email.strip().lower())
        if not user:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "User with this email does not exist")

        if not user.phone or user.phone.strip() != phone_number.strip():
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Phone number does not match our records")

        await self._invalidate(
            user,
            VerificationPurpose.TWO_FA_RESET,
            VerificationPurpose.TWO_FA_EMAIL_CODE,
            VerificationPurpose.TWO_FA_PHONE_CODE,
        )
        reset_token = TwoFAService.generate_reset_token()
        email_code = TwoFAService.generate_verification_code()
        phone_code = TwoFAService.generate_verification_code()
        code_ttl = timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES)

        self._issue(user, VerificationPurpose.TWO_FA_RESET, reset_token,
                    timedelta(minutes=settings.TWO_FA_RESET_EXPIRE_MINUTES))
        self._issue(user, VerificationPurpose.TWO_FA_EMAIL_CODE, email_code, code_ttl)
        self._issue(user, VerificationPurpose.TWO_FA_PHONE_CODE, phone_code, code_ttl)
        await self.db.commit()

        try:
            await messaging_service.send_email(
                user.email,
                "2FA Password Reset - Email Verification",
                messaging_service.two_fa_reset_email(user.first_name, email_code),
            )
        except MessagingError as e:
            logger.error(f"2FA reset email to {user.email} failed: {e}")
            raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send email verification code")

        try:
            await messaging_service.send_sms(user.phone, messaging_service.two_fa_reset_sms(phone_code))
        except MessagingError as e:
            logger.error(f"2FA reset SMS to {user.phone} failed: {e}")
            raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send SMS verification code")

        return reset_token

    async def complete_2fa_reset(
        self, reset_token: str, email_code: str, phone_code: str, new_password: str
    ) -> None:
        token_record = await self._find_token(VerificationPurpose.TWO_FA_RESET, reset_token)
        if not token_record:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired reset token")

        user = await self.db.get(User, token_record.user_id)

        email_record = await self._latest(user, VerificationPurpose.TWO_FA_EMAIL_CODE)
        if not email_record or not TwoFAService.verify_code(email_code, email_record.code_hash):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid email verification code")
        if email_record.is_expired:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email verification code has expired")

        phone_record = await self._latest(user, VerificationPurpose.TWO_FA_PHONE_CODE)
        if not phone_record or not TwoFAService.verify_code(phone_code, phone_record.code_hash):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid phone verification code")
        if phone_record.is_expired:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Phone verification code has expired")

        now = datetime.utcnow()
        for record in (token_record, email_record, phone_record):
            record.consumed_at = now
        user.hashed_password = hash_password(new_password)
        user.refresh_token = None
        await self.db.commit()
        logger.info(f"Password reset with 2FA codes: {user.email}")

    # ------------------------------------------------
    # TOTP
    # ------------------------------------------------
    async def setup_2fa(self, user: User) -> dict:
        if user.two_fa_enabled:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "2FA is already enabled for this account")

        secret = TwoFAService.generate_secret()
        uri = TwoFAService.get_provisioning_uri(user.email, secret)

        # pending until verify_2fa succeeds
        user.two_fa_secret = secret
        await self.db.commit()

        return {
            "qr_code": TwoFAService.get_qr_code_data_url(uri),
            "secret": secret,
            "otpauth_url": uri,
        }

    async def enable_2fa(self, user: User, token: str) -> None:
        if not user.two_fa_secret:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "2FA setup not initiated")
        if not TwoFAService.verify_token(user.two_fa_secret, token):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid 2FA token")

        user.two_fa_enabled = True
        await self.db.commit()
        logger.info(f"2FA enabled: {user.email}")

    async def disable_2fa(self, user: User, token: str) -> None:
        if not user.two_fa_enabled:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "2FA is not enabled for this account")
        if not TwoFAService.verify_token(user.two_fa_secret, token):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid 2FA token")

        user.two_fa_enabled = False
        user.two_fa_secret = None
        await self.db.commit()
        logger.info(f"2FA disabled: {user.email}")

    # ------------------------------------------------
    # PROFILE
    # ------------------------------------------------
    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if hasattr(value, "value"):
                value = value.value
            setattr(user, field, value.strip() if isinstance(value, str) else value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    # ------------------------------------------------
    # HELPERS
    # ------------------------------------------------
    async def _get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    def _issue(self, user: User, purpose: VerificationPurpose, secret: str, ttl: timedelta) -> None:
        self.db.add(VerificationCode(
            user_id=user.id,
            purpose=purpose.value,
            code_hash=TwoFAService.hash_code(secret),
            expires_at=datetime.utcnow() + ttl,
        ))

    async def _invalidate(self, user: User, *purposes: VerificationPurpose) -> None:
        await self.db.execute(
            update(VerificationCode)
            .where(and_(
                VerificationCode.user_id == user.id,
                VerificationCode.purpose.in_([p.value for p in purposes]),
                VerificationCode.consumed_at.is_(None),
            ))
            .values(consumed_at=datetime.utcnow())
        )

    async def _latest(self, user: User, purpose: VerificationPurpose) -> Optional[VerificationCode]:
        result = await self.db.execute(
            select(VerificationCode)
            .where(and_(
                VerificationCode.user_id == user.id,
                VerificationCode.purpose == purpose.value,
                VerificationCode.consumed_at.is_(None),
            ))
            .order_by(VerificationCode.id.desc())
        )
        return result.scalars().first()

    async def _find_code(self, user: User, purpose: VerificationPurpose, code: str) -> Optional[VerificationCode]:
        record = await self._latest(user, purpose)
        if not record or record.is_expired or not TwoFAService.verify_code(code, record.code_hash):
            return None
        return record

    async def _find_token(self, purpose: VerificationPurpose, token: Optional[str]) -> Optional[VerificationCode]:
        if not token:
            return None
        result = await self.db.execute(
            select(VerificationCode).where(and_(
                VerificationCode.purpose == purpose.value,
                VerificationCode.code_hash == TwoFAService.hash_code(token),
                VerificationCode.consumed_at.is_(None),
                VerificationCode.expires_at > datetime.utcnow(),
            ))
        )
        return result.scalars().first()
