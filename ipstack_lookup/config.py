"""Configuration for the ipstack lookup service."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ipstack_lookup.clients.base import DEFAULT_CLIENT_TIMEOUT


class Settings(BaseSettings):
    """Service settings, read from IPSTACK_* environment variables."""

    access_key: str = Field(default="", description="ipstack API access key.")
    use_https: bool = Field(default=False, description="Call ipstack over https (paid plans only).")
    timeout_seconds: int = Field(default=DEFAULT_CLIENT_TIMEOUT, description="Request timeout, 0 disables it.")

    model_config = SettingsConfigDict(
        env_prefix="IPSTACK_",
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
