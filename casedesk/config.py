"""
Configuration for CaseDesk
==========================

Environment variables:
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./casedesk.db)
- JWT_SECRET_KEY: HMAC key for access tokens
- JWT_ACCESS_TOKEN_EXPIRE_MINUTES: token lifetime (default: 60)
- AUTH_COOKIE_SECURE: mark the auth cookie Secure (default: false)
- REDIS_URL: optional redis for the token revocation list
- STORAGE_PATH: root directory for uploaded documents
- LAWYER_BROWSE_ENABLED: expose GET /api/cases/browse to lawyers (default: true)
- SEED_DEMO_DATA: create demo users on startup (default: false)
- CORS_ALLOW_ORIGINS: comma-separated origins
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from functools import lru_cache


DEFAULT_JWT_SECRET = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings from environment variables"""

    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./casedesk.db"
    sql_echo: bool = False
    db_connect_timeout: int = 5

    # Authentication
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    auth_cookie_name: str = "token"
    auth_cookie_secure: bool = False
    auth_cookie_samesite: str = "strict"
    bcrypt_rounds: int = 12

    # Token revocation
    redis_url: Optional[str] = None

    # Documents
    storage_path: str = "./storage"
    max_upload_bytes: int = 25 * 1024 * 1024
    allowed_upload_mime_types: str = (
        "application/pdf,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "image/png,"
        "image/jpeg"
    )

    # Cases
    lawyer_browse_enabled: bool = True
    default_page_size: int = 10
    max_page_size: int = 100

    # HTTP
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    enforce_https: bool = False
    hsts_max_age: int = 31536000

    seed_demo_data: bool = False

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @property
    def upload_mime_types(self) -> List[str]:
        return [m.strip() for m in self.allowed_upload_mime_types.split(",") if m.strip()]

    @property
    def cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]
        return origins or ["http://localhost:3000"]

    def validate_for_production(self) -> List[str]:
        """Validate security-relevant configuration, return list of warnings"""
        warnings = []

        if not self.is_production:
            return warnings

        if self.jwt_secret_key == DEFAULT_JWT_SECRET:
            warnings.append("JWT_SECRET_KEY is the development default")

        if not self.auth_cookie_secure:
            warnings.append("AUTH_COOKIE_SECURE=false in production; the auth cookie will be sent over plain HTTP")

        if self.database_url.startswith("sqlite"):
            warnings.append("DATABASE_URL points at SQLite in production")

        if "*" in self.cors_origins:
            warnings.append("CORS_ALLOW_ORIGINS contains '*' while credentials are allowed")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
