"""Pydantic-based settings loaded from YAML with env-var overrides."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

_MODES = ("live", "batch")


class AppSettings(BaseSettings):
    """Application configuration with YAML + env var support.

    Env vars are prefixed with ``AIRSWEEP_``.
    Example: ``AIRSWEEP_PAGE_COUNT=2``
    """

    model_config = {"env_prefix": "AIRSWEEP_"}

    # --- process ---
    mode: str = "live"
    log_level: str = "INFO"
    report: bool = True  # rich run report after each job

    # --- store ---
    store_path: str = ".state/airsweep.db"

    # --- scraping ---
    page_count: int = Field(default=4, ge=1)  # pages fetched per window
    request_timeout: float = Field(default=60.0, ge=0)  # seconds, 0 = none

    # --- subscription ---
    backoff_base_ms: int = Field(default=1000, gt=0)
    backoff_cap_ms: int = Field(default=30000, gt=0)

    # --- intake ---
    intake_host: str = "127.0.0.1"
    intake_port: int = 8788  # 0 = disabled

    @field_validator("mode")
    @classmethod
    def _normalise_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _MODES:
            raise ValueError(f"mode must be one of {', '.join(_MODES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, v: str) -> str:
        return v.strip().upper()

    # ---- factory ----

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "AppSettings":
        """Load settings from a YAML file, then overlay env vars.

        Env vars (``AIRSWEEP_*``) take priority over YAML values.
        """
        import os

        if path is None:
            path = _PROJECT_ROOT / "settings.yaml"
        path = Path(path)
        raw: dict[str, Any] = {}
        if path.exists():
            with open(path) as fh:
                raw = yaml.safe_load(fh) or {}

        prefix = "AIRSWEEP_"
        for key in list(raw.keys()):
            env_key = f"{prefix}{key.upper()}"
            if env_key in os.environ:
                del raw[key]

        return cls(**raw)
