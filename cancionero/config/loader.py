"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  — Static defaults checked into the repo
#   2. .env file           — Local developer overrides (not committed)
#   3. Environment vars    — Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges
# environment-based values on top:
#   base = {"importer": {"batch_size": 1000}}
#   overrides = {"catalog": {"max_limit": 500}}
#   result = {"importer": {"batch_size": 1000}, "catalog": {"max_limit": 500}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from cancionero.config.settings import Settings

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


def load_config(path: str | Path | None = None, settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.  Defaults to the
            ``config/config.yaml`` shipped at the repository root.
        settings: Pre-built settings; a fresh ``Settings()`` is read otherwise.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "catalog": {
            "max_limit": settings.songs_max_limit,
        },
        "realtime": {
            "path": settings.socket_path,
        },
        "importer": {
            "encoding": settings.csv_encoding,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
