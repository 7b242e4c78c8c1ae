from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class TrackingConfig(BaseModel):
    """Reminder timings for unattended sessions."""
    check_interval_secs: float = Field(3600.0, gt=0)
    prompt_interval_secs: float = Field(60.0, gt=0)
    max_prompts: int = Field(5, ge=1, le=60)
    prompt_message: str = Field("Are you still tracking your route?")

    @field_validator("prompt_message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt_message cannot be blank")
        return value


class WakeLockConfig(BaseModel):
    enabled: bool = Field(True)
    backend: str = Field("systemd-inhibit")
    inhibit_path: str = Field("systemd-inhibit")

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        if value not in ("systemd-inhibit", "none"):
            raise ValueError(f"invalid wake lock backend: {value}")
        return value


class GPSConfig(BaseModel):
    """GPS daemon configuration."""

    host: str = Field("localhost")
    port: int = Field(2947, ge=1, le=65535)
    timeout: float = Field(10.0, ge=1.0)
    reconnect_delay: float = Field(5.0, ge=0.0)
    max_reconnect_attempts: int = Field(3, ge=0)  # 0 = infinite
    mock_mode: bool = Field(False)  # Use mock GPS for testing
    mock_lat: float = Field(41.0082, ge=-90, le=90)
    mock_lon: float = Field(28.9784, ge=-180, le=180)
    mock_interval: float = Field(1.0, gt=0)


class StorageConfig(BaseModel):
    data_dir: Path = Field(Path("data"))

    @field_validator("data_dir")
    @classmethod
    def _expand_data_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def routes_path(self) -> Path:
        return self.data_dir / "routes.jsonl"

    @property
    def finds_path(self) -> Path:
        return self.data_dir / "finds.jsonl"


class LoggingConfig(BaseModel):
    level: str = Field("INFO")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"invalid log level: {value}")
        return value


class DtrackedConfig(BaseModel):
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    wake_lock: WakeLockConfig = Field(default_factory=WakeLockConfig)
    gps: GPSConfig = Field(default_factory=GPSConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path) -> DtrackedConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    try:
        return DtrackedConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - formatting
        raise ValueError(str(exc)) from exc


def resolve_config_path(cli_path: Path | None) -> Path:
    """Resolve config path by priority: CLI, env, /etc/dtracked, repo configs."""
    candidates: list[Path] = []
    if cli_path:
        p = Path(cli_path).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    env = os.environ.get("DTRACKED_CONFIG")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    for p in [Path("/etc/dtracked/dtracked.yml"), Path("configs/dtracked.yml")]:
        if p.exists():
            return p.resolve()
        candidates.append(p)
    # Fallback to first candidate even if not exists to surface errors consistently
    return candidates[0] if candidates else Path("configs/dtracked.yml").resolve()


def load_config_or_default(path: Path | None) -> DtrackedConfig:
    """Load the resolved config file, or built-in defaults when none exists."""
    resolved = resolve_config_path(path)
    if not resolved.exists():
        return DtrackedConfig()
    return load_config(resolved)
