"""Driver configuration loaded via Pydantic settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DOCSTORE_DATA_DIR: Path = Field(default=Path("data"))
    DOCSTORE_LOG_LEVEL: str = Field(default="info")
    DOCSTORE_LOG_DIR: Path | None = Field(default=None)
    DOCSTORE_LOG_SCHEMA_VERSION: str = Field(default="1.0.0")


class DriverOptions(BaseModel):
    """Options accepted when constructing a driver instance."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    data_directory: Path = Field(
        ...,
        validation_alias=AliasChoices("dataDirectory", "data_directory"),
        description="Directory holding one store file per collection",
    )


settings = Settings()
config = settings  # Alias for callers that prefer the shorter name


__all__ = ["Settings", "DriverOptions", "settings", "config"]
