from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FINDMINE_", env_file=".env", extra="ignore")

    api_url: str = "https://api.findmine.com"
    app_id: str = "DEMO_APP_ID"
    api_version: str = "v3"
    default_region: str | None = "us"
    default_language: str | None = "en"

    default_session_id: str = "mcp-default-session"

    cache_enabled: bool = True
    cache_ttl_ms: int = Field(default=3_600_000, gt=0)
    cache_max_entries: int | None = None

    enable_tracking: bool = False
    enable_item_updates: bool = False

    retry_count: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    timeout_seconds: float = Field(default=15.0, gt=0)

    store_max_products: int | None = None
    store_max_looks: int | None = None

    debug: bool = False
    log_level: str = "INFO"

    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8787

    @model_validator(mode="after")
    def _apply_debug_level(self) -> "Settings":
        # FINDMINE_DEBUG wins over an explicit FINDMINE_LOG_LEVEL.
        if self.debug:
            self.log_level = "DEBUG"
        self.log_level = self.log_level.upper()
        self.api_url = self.api_url.rstrip("/")
        return self


settings = Settings()
