from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./rentline.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Actor auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_header_user_id: str = "X-User-Id"

    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days

    # ---- Entity Store ----
    entity_store_backend: str = "sql"  # sql|http
    entity_store_base_url: str = "http://localhost:8000/api/store"
    entity_store_timeout_seconds: float = 10.0
    entity_store_api_key: str | None = None

    # ---- Views ----
    listings_page_size: int = 10
    activities_default_limit: int = 10

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        backend = (self.entity_store_backend or "sql").strip().lower()
        if backend not in ("sql", "http"):
            raise ValueError(f"entity_store_backend must be sql|http, got {self.entity_store_backend!r}")


settings = Settings()
