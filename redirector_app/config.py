from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


STATIC_DIR = Path(__file__).resolve().parent / "static"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Application
    app_name: str = "URL Shortener"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = ["*"]
    # Honour X-Forwarded-For only when running behind a trusted proxy
    trust_proxy_headers: bool = False

    # Database
    database_url: str = "sqlite:///./url_shortener.db"

    # Short code generation
    short_code_length: int = 21
    max_retries: int = 5

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 600  # 10 minutes

    # Static pages used as redirect targets when a redirect fails
    not_found_page: str = "404.html"
    rate_limit_page: str = "RateLimit.html"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
