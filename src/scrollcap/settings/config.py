"""Configuration loader for scrollcap using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (SCROLLCAP_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("SCROLLCAP_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "SCROLLCAP_ENV"
DEFAULT_ENV = "local"


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser and recording settings."""

    model_config = SettingsConfigDict(env_prefix="SCROLLCAP_BROWSER__")

    headless: bool = True
    video_width: int = 1920
    video_height: int = 1080
    device_scale_factor: float = 1.0
    navigation_timeout_ms: int = 60_000
    sandbox: bool = True


class ScrollSettings(BaseSettings):
    """Auto-scroll timing and consent polling."""

    model_config = SettingsConfigDict(env_prefix="SCROLLCAP_SCROLL__")

    default_speed: int = 60
    min_speed: int = 10
    pre_roll_ms: int = 500
    post_roll_ms: int = 500
    network_idle_wait_ms: int = 1500
    consent_poll_ms: int = 1000
    consent_timeout_ms: int = 800


class OutputSettings(BaseSettings):
    """Where finished recordings are written."""

    model_config = SettingsConfigDict(env_prefix="SCROLLCAP_OUTPUT__")

    output_dir: str = "recordings"


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="SCROLLCAP_API__")

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost:3000"]
    # 0 = no cap on jobs recording at the same time
    max_concurrent_jobs: int = 0


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root scrollcap settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="SCROLLCAP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    scroll: ScrollSettings = Field(default_factory=ScrollSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        if not Path(self.output.output_dir).is_absolute():
            self.output.output_dir = str(self.project_root / self.output.output_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
