"""Configuration loading for the admin API.

Rules:
- Primary source: ``storefront_config.json`` at the project root.
- Overrides: optional text files under ``config/``, then environment variables.
- Validation: Pydantic models enforce required fields and allowed values.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from storefront_admin.logic.reorder import STRATEGIES, STRATEGY_BULK

CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("storefront_config.json")
logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=False)
    migrations_journal: Optional[str] = None

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ReorderConfig(BaseModel):
    strategy: str = Field(default=STRATEGY_BULK)

    @field_validator("strategy")
    @classmethod
    def strategy_must_be_known(cls, v: str) -> str:
        if v not in STRATEGIES:
            raise ValueError(f"reorder.strategy must be one of {sorted(STRATEGIES)}")
        return v


class ApiConfig(BaseModel):
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    prefix: str = Field(default="/api/v1")


class AppConfig(BaseModel):
    database: DatabaseConfig
    reorder: ReorderConfig
    api: ApiConfig


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in ``config/`` (optional)
    3) storefront_config.json at project root
    4) Safe defaults for development
    """
    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(x) for x in cur)
        return str(cur) if cur is not None else default

    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_migrate = _env("AUTO_APPLY_MIGRATIONS") or _read_config_file("database.auto_apply_migrations") or _base("database.auto_apply_migrations", "false")
    journal = _env("MIGRATIONS_JOURNAL") or _read_config_file("database.migrations_journal") or _base("database.migrations_journal")

    strategy = (_env("REORDER_STRATEGY") or _read_config_file("reorder.strategy") or _base("reorder.strategy", STRATEGY_BULK) or "").strip()

    origins_text = _env("CORS_ALLOW_ORIGINS") or _read_config_file("api.cors_allow_origins") or _base("api.cors_allow_origins", "*")
    origins = [o.strip() for o in str(origins_text).split(",") if o.strip()] or ["*"]
    prefix = _env("API_PREFIX") or _base("api.prefix", "/api/v1")

    try:
        return AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                auto_apply_migrations=str(auto_migrate).strip().lower() in _TRUTHY,
                migrations_journal=journal,
            ),
            reorder=ReorderConfig(strategy=strategy),
            api=ApiConfig(cors_allow_origins=origins, prefix=prefix),
        )
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "ApiConfig",
    "DatabaseConfig",
    "ReorderConfig",
    "load_config",
]
