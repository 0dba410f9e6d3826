"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"


class TierLimits(BaseModel):
    """Per-tier quota; None means unlimited."""
    draft_limit:     Optional[int] = Field(default=None, ge=0)
    published_limit: Optional[int] = Field(default=None, ge=0)


DEFAULT_TIER_LIMITS: dict[str, TierLimits] = {
    "free": TierLimits(draft_limit=3, published_limit=1),
    "pro":  TierLimits(),
}


class Settings(BaseModel):
    app_name:      str = "quizdraft"
    db_url:        str = "sqlite:///quizdraft.db"
    blob_dir:      str = Field(default=".quizdraft/blobs", description="Directory for migrated assets")
    blob_base_url: str = Field(default="", description="Public URL prefix for blob_dir; empty = file:// URL")
    debounce_seconds:          float = Field(default=30.0, gt=0, description="Autosave idle window")
    new_quiz_debounce_seconds: float = Field(default=5.0,  gt=0, description="Autosave window before first commit")
    default_tier:  str = Field(default="free", description="Tier used when the caller does not pass one")
    log_level:     str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    tier_limits:   dict[str, TierLimits] = Field(default_factory=lambda: dict(DEFAULT_TIER_LIMITS))


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then QUIZDRAFT_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if name == "tier_limits":
            continue
        if val := os.getenv(f"QUIZDRAFT_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
