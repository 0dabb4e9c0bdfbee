import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log_format = logging.Formatter("%(asctime)s : %(levelname)s - %(message)s")

# root logger
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# standard stream handler
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(log_format)
root_logger.addHandler(stream_handler)

logger = logging.getLogger(__name__)

# Load .env file from docker/server directory unless another one is given
env_path = Path(os.getenv("ENV_FILE", "./docker/server/.env"))
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
    logger.info(f"Loaded environment from {env_path}")
else:
    logger.info(f"No .env file at {env_path}, using process environment only")


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # Database Configuration
    DATABASE_URL: Optional[str] = Field(
        default_factory=lambda: os.getenv("DATABASE_URL"),
        description="Async SQLAlchemy database URL (postgresql+asyncpg://...)"
    )

    # Token verification (tokens are issued by the identity provider)
    JWT_SECRET: Optional[str] = Field(
        default_factory=lambda: os.getenv("JWT_SECRET"),
        description="Shared secret used to verify bearer tokens"
    )
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Object storage
    STORAGE_BACKEND: str = "s3"  # "s3" (any S3-compatible endpoint) or "local"
    STORAGE_PROJECT_ID: Optional[str] = Field(
        default_factory=lambda: os.getenv("STORAGE_PROJECT_ID"),
        description="Object store project id"
    )
    STORAGE_BUCKET_NAME: Optional[str] = Field(
        default_factory=lambda: os.getenv("STORAGE_BUCKET_NAME"),
        description="Bucket holding uploaded media"
    )
    STORAGE_ENDPOINT_URL: str = "https://storage.googleapis.com"
    STORAGE_REGION: str = "auto"
    STORAGE_ACCESS_KEY_ID: Optional[str] = None
    STORAGE_SECRET_ACCESS_KEY: Optional[str] = None
    STORAGE_PUBLIC_BASE_URL: Optional[str] = None
    LOCAL_STORAGE_PATH: str = "uploads"
    UPLOAD_TIMEOUT_SECONDS: float = 120.0

    # Billing provider keys (consumed by the payment collaborator)
    STRIPE_SECRET_KEY: Optional[str] = Field(
        default_factory=lambda: os.getenv("STRIPE_SECRET_KEY"),
        description="Billing provider secret key"
    )
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    SUBSCRIPTION_DURATION_DAYS: int = 30

    # Server Configuration
    SERVER_HOST: AnyHttpUrl = "https://localhost"
    SERVER_PORT: int = 8001
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, list[str]]) -> list[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        elif isinstance(v, str):
            return [v]
        raise ValueError(v)

    PROJECT_NAME: str = "sushflix-api"

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def storage_public_base_url(self) -> str:
        """Base URL objects are publicly served from, without trailing slash."""
        if self.STORAGE_PUBLIC_BASE_URL:
            return self.STORAGE_PUBLIC_BASE_URL.rstrip("/")
        return f"{self.STORAGE_ENDPOINT_URL.rstrip('/')}/{self.STORAGE_BUCKET_NAME}"


settings = Settings()

# Validate required settings
if not settings.DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")
if not settings.JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable is required")
if not settings.STORAGE_PROJECT_ID:
    raise ValueError("STORAGE_PROJECT_ID environment variable is required")
if not settings.STORAGE_BUCKET_NAME:
    raise ValueError("STORAGE_BUCKET_NAME environment variable is required")
if not settings.STRIPE_SECRET_KEY:
    raise ValueError("STRIPE_SECRET_KEY environment variable is required")
