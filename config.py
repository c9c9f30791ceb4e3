"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

load_dotenv()

_PROJECT_ROOT = Path(__file__).resolve().parent

_DEFAULT_JWT_SECRET = "change-me-in-production-0123456789abcdef"  # noqa: S105

logger = logging.getLogger(__name__)


class Config(BaseModel):
    """Centralised app configuration backed by env vars."""

    # Runtime
    app_env: str = "development"
    log_level: str = "INFO"

    # Storage
    database_path: str = str(_PROJECT_ROOT / "data" / "shop.db")

    # Cloud media provider
    cloudinary_name: str = ""

    # Auth
    jwt_secret: str = _DEFAULT_JWT_SECRET
    jwt_expiration_minutes: int = 60 * 24 * 30

    # Monitoring sink for unhandled errors
    monitoring_url: str = ""

    # Flask
    flask_host: str = "127.0.0.1"
    flask_port: int = 1337
    flask_debug: bool = True
    flask_secret_key: str = "change-me-in-production"  # noqa: S105
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:1337"]
    max_upload_size_mb: int = 20

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_local(self) -> bool:
        """True for local development and test runs."""
        return self.app_env in ("development", "test")

    def get(self, path: str, default: Any = None) -> Any:
        """Read a setting by name, e.g. ``settings.get("cloudinary_name")``."""
        return getattr(self, path.replace(".", "_"), default)

    @model_validator(mode="after")
    def _warn_empty_critical_fields(self) -> Config:
        """Log warnings when critical integration fields are empty."""
        if not self.cloudinary_name:
            logger.warning("CLOUDINARY_NAME is not set, image variants will use original URLs")
        if self.is_production and self.jwt_secret == _DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET is the default value in production")
        return self

    @classmethod
    def from_env(cls) -> Config:
        """Build config from environment variables."""
        cors_raw = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:1337")
        cors_origins = [o.strip() for o in cors_raw.split(",") if o.strip()]

        return cls(
            app_env=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            database_path=os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "shop.db")),
            cloudinary_name=os.getenv("CLOUDINARY_NAME", ""),
            jwt_secret=os.getenv("JWT_SECRET", _DEFAULT_JWT_SECRET),
            jwt_expiration_minutes=int(os.getenv("JWT_EXPIRATION_MINUTES", str(60 * 24 * 30))),
            monitoring_url=os.getenv("MONITORING_URL", ""),
            flask_host=os.getenv("FLASK_HOST", "127.0.0.1"),
            flask_port=int(os.getenv("FLASK_PORT", "1337")),
            flask_debug=os.getenv("FLASK_DEBUG", "true").lower() in ("1", "true", "yes"),
            flask_secret_key=os.getenv("FLASK_SECRET_KEY", "change-me-in-production"),
            cors_origins=cors_origins,
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", "20")),
        )


settings = Config.from_env()
