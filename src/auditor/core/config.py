"""auditor configuration: Pydantic model, load, and save."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from auditor.core.constants import (
    AUDITOR_DIR_NAME,
    CONFIG_FILENAME,
    DB_FILENAME,
    DEFAULT_HOST,
    DEFAULT_LOG_FILE,
    DEFAULT_PORT,
    RETENTION_WEEKS,
    SETTLE_SECONDS,
)
from auditor.core.exceptions import ConfigError, ConfigNotFoundError


def auditor_dir() -> Path:
    """Return the default auditor data directory (~/.auditor), creating it if needed."""
    d = Path.home() / AUDITOR_DIR_NAME
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class IngestConfig(BaseModel):
    log_file: str = DEFAULT_LOG_FILE
    catch_up: bool = False
    settle_ms: int = int(SETTLE_SECONDS * 1000)

    @field_validator("settle_ms")
    @classmethod
    def validate_settle(cls, v: int) -> int:
        if not (0 <= v <= 5000):
            raise ValueError("settle_ms must be between 0 and 5000")
        return v


class ServerConfig(BaseModel):
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    static_dir: str = ""  # empty → bundled page

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("port must be between 1 and 65535")
        return v


class DatabaseConfig(BaseModel):
    path: str = ""  # empty → use default


class RetentionConfig(BaseModel):
    weeks: int = Field(default=RETENTION_WEEKS, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v.lower() not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v.lower()


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class AuditorConfig(BaseModel):
    """Root auditor configuration model."""

    data_dir: str = ""  # empty → ~/.auditor
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Computed paths (not stored in config file)
    _config_path: Path | None = None

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            d = Path(self.data_dir).expanduser()
            d.mkdir(parents=True, exist_ok=True)
            return d
        return auditor_dir()

    @property
    def db_path(self) -> Path:
        if self.database.path:
            return Path(self.database.path).expanduser()
        return self.data_path / DB_FILENAME

    @property
    def log_path(self) -> Path:
        return Path(self.ingest.log_file).expanduser()

    @property
    def static_path(self) -> Path:
        if self.server.static_dir:
            return Path(self.server.static_dir).expanduser()
        return Path(__file__).resolve().parent.parent / "dashboard" / "static"

    @property
    def settle_seconds(self) -> float:
        return self.ingest.settle_ms / 1000


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("AUDITOR_CONFIG"):
        return Path(env_path)
    return Path.home() / AUDITOR_DIR_NAME / CONFIG_FILENAME


def load_config(path: Path | None = None) -> AuditorConfig:
    """
    Load AuditorConfig from TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (AUDITOR_*, plus PORT and DATA_DIR)
      2. Config file (~/.auditor/config.toml or $AUDITOR_CONFIG)
      3. Built-in defaults

    A missing file is only an error when it was asked for explicitly.
    """
    import tomllib

    explicit = path is not None or "AUDITOR_CONFIG" in os.environ
    cfg_path = path or _config_file_path()

    data: dict[str, Any] = {}
    if cfg_path.exists():
        try:
            with open(cfg_path, "rb") as f:
                data = tomllib.load(f)
        except Exception as exc:
            raise ConfigError(f"Cannot read config file {cfg_path}: {exc}") from exc
    elif explicit:
        raise ConfigNotFoundError(
            f"Config file not found: {cfg_path}\n"
            "Run 'auditor config init' to create one."
        )

    _apply_env_overrides(data)

    try:
        config = AuditorConfig.model_validate(data)
    except Exception as exc:
        raise ConfigError(f"Invalid config at {cfg_path}: {exc}") from exc

    config._config_path = cfg_path
    return config


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay AUDITOR_* environment variables onto the parsed TOML data."""
    if log_file := os.environ.get("AUDITOR_LOG_FILE"):
        data.setdefault("ingest", {})["log_file"] = log_file
    if host := os.environ.get("AUDITOR_HOST"):
        data.setdefault("server", {})["host"] = host
    if port := os.environ.get("AUDITOR_PORT") or os.environ.get("PORT"):
        try:
            data.setdefault("server", {})["port"] = int(port)
        except ValueError as exc:
            raise ConfigError(f"Invalid port in environment: {port!r}") from exc
    if static_dir := os.environ.get("AUDITOR_STATIC_DIR"):
        data.setdefault("server", {})["static_dir"] = static_dir
    if data_dir := os.environ.get("AUDITOR_DATA_DIR") or os.environ.get("DATA_DIR"):
        data["data_dir"] = data_dir
    if db := os.environ.get("AUDITOR_DB_PATH"):
        data.setdefault("database", {})["path"] = db
    if level := os.environ.get("AUDITOR_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level


def config_to_dict(config: AuditorConfig) -> dict[str, Any]:
    """Serialize a config to the TOML-ready dict layout."""
    return config.model_dump(mode="json")


def save_config(config_data: dict[str, Any], path: Path | None = None) -> Path:
    """Write config dict to TOML file with secure permissions (0600)."""
    import tomli_w

    cfg_path = path or _config_file_path()
    cfg_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    # Write atomically
    tmp_path = cfg_path.with_suffix(".tmp")
    try:
        with open(tmp_path, "wb") as f:
            tomli_w.dump(config_data, f)
        tmp_path.rename(cfg_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Cannot write config to {cfg_path}: {exc}") from exc

    cfg_path.chmod(0o600)
    return cfg_path
