from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Campus Connect API"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api"
    request_id_header: str = "X-Request-Id"
    frontend_url: str = "http://localhost:5173"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 60 * 24 * 7

    # ─────────── UPLOADS ───────────
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"

    # ─────────── NOTIFICATIONS ───────────
    notification_preview_chars: int = 100

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.frontend_url.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
