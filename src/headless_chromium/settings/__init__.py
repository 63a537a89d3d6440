"""Runner settings (pydantic-settings with TOML layering)."""

from headless_chromium.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
