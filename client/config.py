# client/config.py
from pydantic_settings import BaseSettings

DEFAULT_API_BASE_URL = "http://localhost:5001/api"


class ClientSettings(BaseSettings):
    API_BASE_URL: str = DEFAULT_API_BASE_URL
    REQUEST_TIMEOUT: float = 30.0

    class Config:
        env_prefix = "REPOSITORY_CLIENT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_client_settings() -> ClientSettings:
    return ClientSettings()
