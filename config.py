import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "ebooks.db")
    database_pool_size: int = int(os.getenv("DATABASE_POOL_SIZE", "5"))
    # Seconds a connection waits on a locked database before failing
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "30"))

    # Admin login
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin")

    # Session cookie
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "session")
    session_secret: str = os.getenv("SESSION_SECRET", "change-this-session-secret-in-production")
    session_algorithm: str = os.getenv("SESSION_ALGORITHM", "HS256")
    session_max_age_days: int = int(os.getenv("SESSION_MAX_AGE_DAYS", "5"))

    # Object storage (Supabase)
    supabase_url: Optional[str] = os.getenv("SUPABASE_URL")
    supabase_service_key: Optional[str] = os.getenv("SUPABASE_SERVICE_KEY")
    storage_bucket: str = os.getenv("STORAGE_BUCKET", "ebook-pdf")
    storage_timeout: float = float(os.getenv("STORAGE_TIMEOUT", "10"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "E-Book Catalog")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    environment: str = os.getenv("ENVIRONMENT", "development")
    debug: bool = _env_bool("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    static_dir: str = os.getenv("STATIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "static"))

    # Pagination
    default_page_limit: int = int(os.getenv("DEFAULT_PAGE_LIMIT", "5"))

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_days * 24 * 60 * 60

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


settings = Settings()
