"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables** — e.g., MONGO_URI=mongodb://db:27017/karaoke
#      (highest priority, always wins)
#   2. **.env file** — key=value lines in the project root .env file
#      (lower priority, used for local development)
#
# The mapping is automatic: field name `admin_key` maps to env var
# `ADMIN_KEY` (pydantic-settings uppercases and matches).
#
# The .env file is in .gitignore and never committed to the repo.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Cancionero application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Database ===
    # Required. Empty = unset: the server and the import CLI refuse to start.
    mongo_uri: str = ""
    mongo_db: str = ""  # Empty = take the database name from MONGO_URI
    mongo_server_selection_timeout_ms: int = 5000

    # === Admin console ===
    # Empty string = "not configured" → every /api/admin call answers 500
    # until the operator sets it.
    admin_key: str = ""

    # === HTTP / realtime ===
    client_origin: str = "*"
    cors_origins: str = ""  # Comma-separated allowlist; wins over CLIENT_ORIGIN when set
    socket_path: str = "/socket.io"

    # === Catalog ===
    songs_max_limit: int = 2000

    # === Request queue ===
    # False = unknown source/performer values fall back to defaults.
    # True  = they are rejected with a 400 like any other bad field.
    strict_enums: bool = False

    # === Catalog import (CLI) ===
    csv_path: str = ""
    csv_encoding: str = "auto"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 4000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_allowed_origins(self) -> list[str]:
        """Return the CORS allowlist; ``["*"]`` when nothing narrower is set."""
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        if origins:
            return origins
        return [self.client_origin.strip() or "*"]
