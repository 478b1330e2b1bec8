"""
FolderSync configuration management.

Provides validated startup parameters and optional tuning settings using Pydantic.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from foldersync.core.exceptions import ConfigValidationError


class LoggingConfig(BaseModel):
    """Configuration for diagnostic structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    console_enabled: bool = True
    json_format: bool = False


class SyncSettings(BaseModel):
    """Optional knobs for the synchronization engine."""

    exclude_patterns: list[str] = Field(default_factory=list)
    verify_retries: int = Field(default=0, ge=0, le=10)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    digest_cache: bool = False
    chunk_size_kb: int = Field(default=1024, ge=1, le=65536)

    @property
    def chunk_size(self) -> int:
        return self.chunk_size_kb * 1024

    @classmethod
    def load(cls, settings_path: Path | None = None) -> SyncSettings:
        """Load settings from a JSON file, or return defaults."""
        if settings_path is None or not settings_path.exists():
            return cls()

        with open(settings_path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)


class FolderSyncConfig(BaseModel):
    """Main FolderSync configuration."""

    source: Path
    replica: Path
    interval_seconds: int = Field(gt=0)
    log_file: Path
    settings: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("source", mode="before")
    @classmethod
    def check_source(cls, v: str | Path) -> Path:
        return _existing_directory(v, "Source")

    @field_validator("replica", mode="before")
    @classmethod
    def check_replica(cls, v: str | Path) -> Path:
        return _existing_directory(v, "Replica")

    @field_validator("log_file", mode="before")
    @classmethod
    def expand_log_file(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def check_trees_disjoint(self) -> FolderSyncConfig:
        if self.source == self.replica:
            raise ValueError("Source and replica folders must be different.")
        if self.source in self.replica.parents:
            raise ValueError(
                f"Replica folder '{self.replica}' must not be inside source folder '{self.source}'."
            )
        if self.replica in self.source.parents:
            raise ValueError(
                f"Source folder '{self.source}' must not be inside replica folder '{self.replica}'."
            )
        return self


def _existing_directory(value: str | Path, label: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_dir():
        raise ValueError(f"{label} folder '{value}' does not exist.")
    return path.resolve()


def _format_error(error: dict[str, Any]) -> str:
    if error["type"] == "value_error":
        return str(error["ctx"]["error"])
    location = ".".join(str(part) for part in error["loc"])
    if location:
        return f"{location}: {error['msg']}"
    return error["msg"]


def build_config(
    source: str | Path,
    replica: str | Path,
    interval_seconds: int,
    log_file: str | Path,
    settings: SyncSettings | None = None,
    logging: LoggingConfig | None = None,
) -> FolderSyncConfig:
    """Validate startup parameters, raising ConfigValidationError on failure."""
    data: dict[str, Any] = {
        "source": source,
        "replica": replica,
        "interval_seconds": interval_seconds,
        "log_file": log_file,
    }
    if settings is not None:
        data["settings"] = settings
    if logging is not None:
        data["logging"] = logging

    try:
        return FolderSyncConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigValidationError([_format_error(e) for e in exc.errors()]) from exc
