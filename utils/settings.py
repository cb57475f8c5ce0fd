import os
import urllib.parse
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_str(name: str, default: str = "") -> str:
    # .env values are sometimes wrapped in quotes
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().strip("\"'").strip()


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and handed to the
    components that need it (database, token signer, mailer, redis)."""

    database_url: str
    log_level: str = "INFO"

    # JWT Configuration
    jwt_secret_key: str = "changeme-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expiry_minutes: int = 7 * 24 * 60

    super_admin_email: str = ""
    super_admin_password: str = ""
    super_admin_name: str = "Super Admin"
    super_admin_token_expiry_minutes: int = 8 * 60

    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "noreply@example.com"
    mail_from_name: str = "Smart Leave"
    mail_port: int = 587
    mail_server: str = "smtp.gmail.com"
    mail_starttls: bool = True
    mail_ssl_tls: bool = False
    mail_suppress_send: bool = False

    redis_enabled: bool = True
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    api_base_url: str = "http://localhost:8081"
    allowed_origins: List[str] = []

    @property
    def mail_configured(self) -> bool:
        return bool(self.mail_username and self.mail_password)

    @property
    def super_admin_configured(self) -> bool:
        return bool(self.super_admin_email and self.super_admin_password)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=get_database_url(),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            jwt_secret_key=_env_str("JWT_SECRET_KEY", "changeme-in-production"),
            jwt_algorithm=_env_str("JWT_ALGORITHM", "HS256"),
            access_token_expiry_minutes=int(_env_str("ACCESS_TOKEN_EXPIRY_MINUTES", str(7 * 24 * 60))),
            super_admin_email=_env_str("SUPER_ADMIN_EMAIL"),
            super_admin_password=_env_str("SUPER_ADMIN_PASSWORD"),
            super_admin_name=_env_str("SUPER_ADMIN_NAME", "Super Admin"),
            super_admin_token_expiry_minutes=int(_env_str("SUPER_ADMIN_TOKEN_EXPIRY_MINUTES", str(8 * 60))),
            mail_username=_env_str("MAIL_USERNAME"),
            mail_password=_env_str("MAIL_PASSWORD"),
            mail_from=_env_str("MAIL_FROM", "noreply@example.com"),
            mail_from_name=_env_str("MAIL_FROM_NAME", "Smart Leave"),
            mail_port=int(_env_str("MAIL_PORT", "587")),
            mail_server=_env_str("MAIL_SERVER", "smtp.gmail.com"),
            mail_starttls=_env_bool("MAIL_STARTTLS", "true"),
            mail_ssl_tls=_env_bool("MAIL_SSL_TLS"),
            mail_suppress_send=_env_bool("MAIL_SUPPRESS_SEND"),
            redis_enabled=_env_bool("REDIS_ENABLED", "true"),
            redis_url=_env_str("REDIS_URL") or None,
            redis_host=_env_str("REDIS_HOST", "localhost"),
            redis_port=int(_env_str("REDIS_PORT", "6379")),
            redis_db=int(_env_str("REDIS_DB", "0")),
            api_base_url=_env_str("API_BASE_URL") or _env_str("LOCAL_URL", "http://localhost:8081"),
            allowed_origins=get_allowed_origins(),
        )


def get_database_url() -> str:
    """Get database URL from environment variables"""
    database_url = _env_str("DATABASE_URL")
    if database_url:
        return database_url

    # Fallback: construct URL if DATABASE_URL not found
    db_user = _env_str("DB_USER")
    db_password = _env_str("DB_PASSWORD")
    db_host = _env_str("DB_HOST")
    db_port = _env_str("DB_PORT")
    db_name = _env_str("DB_NAME")
    if not all([db_user, db_password, db_host, db_port, db_name]):
        raise ValueError("Database configuration incomplete. Please check your .env file.")

    encoded_password = urllib.parse.quote_plus(db_password)
    return f"mysql+pymysql://{db_user}:{encoded_password}@{db_host}:{db_port}/{db_name}"


def get_allowed_origins() -> List[str]:
    # Parse comma-separated origins and create list
    allowed_origins = []
    for env_var in ("REACT_APP_API_URL", "FRONTEND_URL"):
        value = _env_str(env_var)
        if value:
            allowed_origins.extend(origin.strip() for origin in value.split(",") if origin.strip())

    # Remove duplicates while preserving order
    allowed_origins = list(dict.fromkeys(allowed_origins))

    # If no origins configured, allow localhost for development
    if not allowed_origins:
        allowed_origins = ["http://localhost:3000", "http://localhost:8000"]
    return allowed_origins


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
