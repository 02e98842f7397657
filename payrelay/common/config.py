"""Environment-driven settings for the gateway process.

Settings are loaded once by the app factory and passed down explicitly; nothing
in the package reads the environment on its own (see `.env.example`).
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payrelay"
    log_level: str = "INFO"
    square_access_token: str = ""
    square_environment: Literal["sandbox", "production"] = "sandbox"
    square_version: str = "2024-01-18"
    square_base_url: str | None = None
    request_timeout_seconds: float = 10.0
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0
    retry_max_elapsed_seconds: float = 30.0
    # Server-side charge; client-supplied amounts are never forwarded.
    payment_amount_cents: int = 100
    payment_currency: str = "USD"
    static_dir: str = "public"
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def square_url(self) -> str:
        """Base URL of the Square REST API for the configured environment."""

        if self.square_base_url:
            return self.square_base_url.rstrip("/")
        return SQUARE_BASE_URLS[self.square_environment]


def load_settings() -> Settings:
    """Read settings from the process environment."""

    return Settings()
