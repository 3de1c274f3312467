import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    plex_client_identifier: str = "plexport"
    plex_product_name: str = "PlExport"
    session_secret_key: str = "development-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    session_max_age_seconds: int = 7 * 24 * 60 * 60  # 7 days
    session_cookie_name: str = "plexport-session"
    environment: str = "development"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Upstream (plex.tv and Plex Media Server) requests
    upstream_timeout_seconds: float = 15.0

    # Caller-side PIN polling
    pin_poll_interval_seconds: float = 2.0
    pin_poll_timeout_seconds: float = 300.0
    pin_poll_max_failures: int = 5

    log_level: str = "INFO"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    @property
    def cookie_secure(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
