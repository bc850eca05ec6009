# core/config.py
from typing import *

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "RUNACOSS Repository"
    DEBUG: bool = False

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Verification and reset lifetimes
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 10
    EMAIL_TOKEN_EXPIRE_HOURS: int = 24
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    TWO_FA_RESET_EXPIRE_MINUTES: int = 30
    TOTP_ISSUER: str = "RUNACOSS"
    TOTP_VALID_WINDOW: int = 2

    # Registration rules
    ALLOWED_EMAIL_DOMAIN: str = "run.edu.ng"
    ALLOWED_DEPARTMENTS: List[str] = [
        "Computer Science",
        "Cyber Security",
        "Information Technology",
    ]

    # Repository storage
    FILE_STORAGE_PATH: str = "./uploads"
    MAX_FILE_SIZE: int = 500 * 1024 * 1024  # 500MB
    DEFAULT_PAGE_SIZE: int = 20

    FRONTEND_BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "*"

    # Email
    EMAIL_PROVIDER: str = "console"  # console, smtp
    EMAIL_SENDER: str = "no-reply@runacoss.org"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    # SMS
    SMS_PROVIDER: str = "console"  # console, twilio
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None

    # Database
    DATABASE_URL: str

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
