"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class StorageConfig(BaseSettings):
    base_dir: str = "data/storage"
    public_base_url: str = "http://localhost:8000/storage"
    task_photo_bucket: str = "task-photos"
    cms_bucket: str = "cms-images"


class CompletionConfig(BaseSettings):
    max_photos_per_batch: int = 5


class PayrollConfig(BaseSettings):
    tax_rate: float = 0.20
    super_rate: float = 0.115


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/cleaning_portal.db"
    resend_api_key: str = ""
    email_from: str = "Touch Cleaning <info@touchcleaning.com.au>"
    company_email: str = "info@touchcleaning.com.au"
    app_url: str = "http://localhost:8000"
    session_max_age_days: int = 7
    session_idle_timeout_minutes: int = 15
    storage: StorageConfig = Field(default_factory=StorageConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    payroll: PayrollConfig = Field(default_factory=PayrollConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    storage = StorageConfig(**y.get("storage", {}))
    completion = CompletionConfig(**y.get("completion", {}))
    payroll = PayrollConfig(**y.get("payroll", {}))
    overrides = {
        k: v for k, v in y.items()
        if k not in ("storage", "completion", "payroll", "database")
    }
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    return Settings(storage=storage, completion=completion, payroll=payroll, **overrides)
