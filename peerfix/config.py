"""Runtime settings, read from PEERFIX_* environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PEERFIX_")

    registry_url: str = DEFAULT_REGISTRY_URL
    timeout: float = 30.0
    max_concurrency: int = 6
    preserve_exact_pins: bool = False
    validate_versions: bool = True
    max_suggestion_rounds: int = 2
    log_level: str = "WARNING"

    # start_web.py
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
