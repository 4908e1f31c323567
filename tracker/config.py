"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:3000/api"  # what the store talks to (usually the proxy)
    backend_url: str = "http://localhost:3011"  # upstream trade service behind the proxy
    request_timeout: float = 5.0  # httpx default
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_prefix": "TT_", "env_file": ".env"}


settings = Settings()
