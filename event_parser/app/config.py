"""Config file."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # CHAIN
    rpc_endpoint: str | None = Field(None, alias="RPC_ENDPOINT")
    chain_client_backend: str = Field("web3", alias="CHAIN_CLIENT_BACKEND")
    request_timeout: float = Field(30.0, gt=0, alias="REQUEST_TIMEOUT")

    # PRESENTATION
    page_size: int = Field(15, gt=0, alias="PAGE_SIZE")

    # LOGGING
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings: Settings = Settings()
