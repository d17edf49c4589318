from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "island-provider-directory"
    environment: str = "dev"
    log_level: str = "INFO"
    admin_key_header: str = "X-Admin-Key"
    admin_api_key: str | None = None
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    database_command_timeout_seconds: float = 15.0
    lifecycle_active_window_days: int = 30
    lifecycle_inactive_window_days: int = 90
    otel_enabled: bool = True
    otel_service_name: str = "island-provider-directory"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True
    otel_excluded_urls: str = "healthz"

    model_config = SettingsConfigDict(env_prefix="PD_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
