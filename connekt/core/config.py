from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_NAME: str = "Connekt Profiles"
    APP_ENV: Literal["development", "production"] = "production"
    REDIS_URL: str = "redis://redis:6379/0"
    # Maximum number of connections the store clients open per process
    REDIS_MAX_CONNECTIONS: int = 20
    # Namespace for every key written by the document and blob stores
    STORE_KEY_PREFIX: str = "connekt:"

    # Media
    MEDIA_BASE_URL: str = "https://media.connekt.com"
    UPLOAD_CHUNK_SIZE: int = 256 * 1024
    MAX_MEDIA_SIZE_MB: int = 100

    # Analytics
    TALENT_POOL_MEMBER_LIMIT: int = 100
    SEARCH_SKILLS_LIMIT: int = 10
    DEFAULT_COMMISSION_RATE: float = 15.0
    PORTAL_BASE_DOMAIN: str = "connekt.com"


settings = Settings()
