"""Configuration loader for the headless Chromium runner using Pydantic settings.

Config precedence (highest wins):
  1. Legacy environment variables (CHROMIUM_EXE_PATH, LOG_CR_VERBOSITY, LOG_CR_HIDE_PATTERN)
  2. Constructor values and environment variables (HCR_* with __ for nesting)
  3. settings.local.toml
  4. settings.<HCR_ENV>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tempfile
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("HCR_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "HCR_ENV"
DEFAULT_ENV = "local"

# Environment variables understood by earlier releases, mapped onto
# (section, field). They win over HCR_* variables and TOML files.
LEGACY_ENV_VARS: dict[str, tuple[str, str]] = {
    "CHROMIUM_EXE_PATH": ("chromium", "executable_path"),
    "LOG_CR_VERBOSITY": ("logs", "forward_pattern"),
    "LOG_CR_HIDE_PATTERN": ("logs", "hide_pattern"),
}


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


class ChromiumSettings(BaseSettings):
    """Chromium lookup and process handling."""

    model_config = SettingsConfigDict(env_prefix="HCR_CHROMIUM__")

    executable_path: str = ""
    candidates: list[str] = Field(
        default_factory=lambda: [
            # Linux
            "chromium",
            "google-chrome",
            "chromium-browser",
            # OS X
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        ]
    )
    drain_timeout_sec: float = 2.0
    kill_wait_sec: float = 5.0


class LogSettings(BaseSettings):
    """Which Chromium log records reach stdout."""

    model_config = SettingsConfigDict(env_prefix="HCR_LOGS__")

    forward_pattern: str = "ERROR|ERROR_REPORT|FATAL"
    hide_pattern: str = "kwallet"
    read_chunk_size: int = Field(default=65536, gt=0)


class DisplaySettings(BaseSettings):
    """Xvfb virtual display configuration.

    The screen geometry matches the one used by Chromium's own test bots.
    """

    model_config = SettingsConfigDict(env_prefix="HCR_DISPLAY__")

    binary: str = "Xvfb"
    screen: str = "0"
    resolution: str = "1024x768x24"
    extra_args: list[str] = Field(default_factory=lambda: ["-ac"])
    first_display: int = 99
    startup_timeout_sec: float = 10.0
    stop_timeout_sec: float = 5.0


class WorkspaceSettings(BaseSettings):
    """Temporary Chromium user-data directory."""

    model_config = SettingsConfigDict(env_prefix="HCR_WORKSPACE__")

    base_dir: str = ""
    prefix: str = "chromium_headless_user_data_directory"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root runner settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="HCR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    log_level: str = "INFO"

    chromium: ChromiumSettings = Field(default_factory=ChromiumSettings)
    logs: LogSettings = Field(default_factory=LogSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files and legacy env vars around env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        legacy: dict[str, Any] = {}
        for var, (section, key) in LEGACY_ENV_VARS.items():
            if var in os.environ:
                legacy.setdefault(section, {})[key] = os.environ[var]

        # Merge: defaults < env-specific < local < HCR_* env < legacy env
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values, legacy):
            for key, val in layer.items():
                if isinstance(val, BaseModel):
                    val = val.model_dump()
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Default the workspace base directory to the platform temp dir."""
        if not self.workspace.base_dir:
            self.workspace.base_dir = tempfile.gettempdir()
        elif not Path(self.workspace.base_dir).is_absolute():
            self.workspace.base_dir = str(self.project_root / self.workspace.base_dir)
        self.log_level = self.log_level.upper()
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
