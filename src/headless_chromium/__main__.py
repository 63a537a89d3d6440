"""Allow ``python -m headless_chromium <chromium flags>``."""

from headless_chromium.cli.app import app

if __name__ == "__main__":
    app()
