"""Toolbridge configuration via environment / .env file."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOOLBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Listener ---
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # --- SSE ---
    SSE_KEEPALIVE_SECONDS: float = 30.0

    # --- MCP identity (returned by initialize) ---
    PROTOCOL_VERSION: str = "2024-11-05"
    SERVER_NAME: str = "CustomMCP"
    SERVER_VERSION: str = "1.0.0"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    @field_validator("PORT")
    @classmethod
    def _check_port(cls, v: int) -> int:
        if not 0 <= v <= 65535:
            raise ValueError(f"port out of range: {v}")
        return v

    @field_validator("SSE_KEEPALIVE_SECONDS")
    @classmethod
    def _check_keepalive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("keepalive interval must be positive")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return str(v).upper()


settings = Settings()
