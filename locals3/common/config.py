from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_MAX_PART_NUMBER = 10000


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_temp_buckets(value: str | None) -> dict[str, float]:
    """Parse ``bucket=hours,bucket=hours`` into a retention mapping."""
    policy: dict[str, float] = {}
    for item in _as_list(value):
        bucket, sep, hours = item.partition("=")
        bucket = bucket.strip()
        if not sep or not bucket:
            raise ValueError(f"TEMP_BUCKETS entry '{item}' must look like bucket=hours")
        try:
            retention = float(hours)
        except ValueError as exc:
            raise ValueError(
                f"TEMP_BUCKETS entry '{item}' has a non-numeric retention"
            ) from exc
        if retention < 0:
            raise ValueError(f"TEMP_BUCKETS entry '{item}' has a negative retention")
        policy[bucket] = retention
    return policy


@dataclass
class Settings:
    STORAGE_ROOT: Path = Path("data")
    ACCESS_KEY: str = ""
    TEMP_BUCKETS: dict[str, float] = field(default_factory=dict)
    CRON_SECRET_KEY: str | None = None
    MAINTENANCE_MODE: bool = False
    MAX_PART_NUMBER: int = DEFAULT_MAX_PART_NUMBER
    CORS_ENABLED: bool = True
    CORS_ORIGINS: list[str] = field(default_factory=lambda: ["*"])
    ENABLE_METRICS: bool = True
    DEBUG_LOG: bool = False
    ERROR_LOG_FILE: str | None = None

    def __post_init__(self) -> None:
        self.STORAGE_ROOT = Path(self.STORAGE_ROOT)
        if self.MAX_PART_NUMBER < 0:
            raise ValueError("MAX_PART_NUMBER must be zero (unbounded) or positive.")
        for bucket, hours in self.TEMP_BUCKETS.items():
            if hours < 0:
                raise ValueError(f"Retention for temporary bucket '{bucket}' is negative.")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            STORAGE_ROOT=Path(os.environ.get("STORAGE_ROOT", str(cls.STORAGE_ROOT))),
            ACCESS_KEY=os.environ.get("ACCESS_KEY", cls.ACCESS_KEY),
            TEMP_BUCKETS=parse_temp_buckets(os.environ.get("TEMP_BUCKETS")),
            CRON_SECRET_KEY=os.environ.get("CRON_SECRET_KEY") or None,
            MAINTENANCE_MODE=_as_bool(
                os.environ.get("MAINTENANCE_MODE"), cls.MAINTENANCE_MODE
            ),
            MAX_PART_NUMBER=int(
                os.environ.get("MAX_PART_NUMBER", cls.MAX_PART_NUMBER)
            ),
            CORS_ENABLED=_as_bool(os.environ.get("CORS_ENABLED"), cls.CORS_ENABLED),
            CORS_ORIGINS=_as_list(os.environ.get("CORS_ORIGINS")) or ["*"],
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            DEBUG_LOG=_as_bool(os.environ.get("DEBUG_LOG"), cls.DEBUG_LOG),
            ERROR_LOG_FILE=os.environ.get("ERROR_LOG_FILE") or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
