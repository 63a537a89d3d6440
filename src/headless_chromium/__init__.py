"""Headless Chromium runner: Chromium in Xvfb with JavaScript console forwarding."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("headless-chromium")
except Exception:
    __version__ = "0.0.0"
