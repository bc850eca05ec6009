import base64
import hashlib
import hmac
import io
import secrets
from typing import Optional

import pyotp
import qrcode

from core.config import settings


class TwoFAService:

    @staticmethod
    def generate_secret() -> str:
        return pyotp.random_base32()

    # -----------------------------------
    # ONE-TIME CODES
    # -----------------------------------
    @staticmethod
    def generate_verification_code() -> str:
        return f"{secrets.randbelow(900000) + 100000}"

    @staticmethod
    def generate_reset_token() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def hash_code(code: str) -> str:
        return hashlib.sha256(code.strip().encode()).hexdigest()

    @classmethod
    def verify_code(cls, code: Optional[str], hashed: Optional[str]) -> bool:
        if not code or not hashed:
            return False
        return hmac.compare_digest(cls.hash_code(code), hashed)

    # -----------------------------------
    # QR
    # -----------------------------------
    @staticmethod
    def get_provisioning_uri(email: str, secret: str, issuer: str = None) -> str:
        return pyotp.TOTP(secret).provisioning_uri(email, issuer_name=issuer or settings.TOTP_ISSUER)

    @staticmethod
    def get_qr_code_data_url(uri: str) -> str:
        img = qrcode.make(uri)
        buf = io.BytesIO()
        img.save(buf, format="PNG")

        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()

    # -----------------------------------
    # VERIFY TOTP
    # -----------------------------------
    @staticmethod
    def verify_token(secret: Optional[str], token: Optional[str]) -> bool:
        if not secret or not token:
            return False
        return pyotp.TOTP(secret).verify(token.strip(), valid_window=settings.TOTP_VALID_WINDOW)
