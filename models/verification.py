# models/verification.py
import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from models.base import Base


class VerificationPurpose(str, enum.Enum):
    EMAIL_CODE = "email_code"            # 6-digit code sent after registration
    EMAIL_LINK = "email_link"            # token embedded in the verification link
    PASSWORD_RESET = "password_reset"    # token embedded in the reset link
    TWO_FA_RESET = "two_fa_reset"        # reset token returned to the client
    TWO_FA_EMAIL_CODE = "two_fa_email_code"
    TWO_FA_PHONE_CODE = "two_fa_phone_code"


class VerificationCode(Base):
    """A single-use secret; only its SHA-256 digest is stored."""

    __tablename__ = "verification_codes"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    purpose = Column(String(32), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed_at = Column(DateTime, nullable=True)

    @property
    def is_expired(self) -> bool:
        return self.expires_at < datetime.utcnow()
