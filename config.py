"""Configuration management - loads environment variables and the config file."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from constants import CALENDAR_WINDOW_DAYS as _DEFAULT_WINDOW_DAYS

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_URL = "https://canvas.instructure.com"


def _xdg_dir(env_var: str, fallback: str) -> Path:
    base = os.getenv(env_var)
    if base:
        return Path(base)
    return Path.home() / fallback


def default_config_path() -> Path:
    """Location of the TOML config file (~/.config/canvas-tui/config.toml)."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "canvas-tui" / "config.toml"


def default_cache_path() -> Path:
    """Location of the per-user snapshot cache (~/.cache/canvas-tui/cache.json)."""
    return _xdg_dir("XDG_CACHE_HOME", ".cache") / "canvas-tui" / "cache.json"


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the TOML config file; a missing or broken file yields an empty dict."""
    path = Path(path) if path else default_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def generate_default_config(path: Optional[Path] = None) -> Path:
    """Write a template config file and return where it was written."""
    path = Path(path) if path else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        'canvas_url = "https://your-school.instructure.com"\n'
        'api_token = "your-api-token-here"\n',
        encoding="utf-8",
    )
    return path


CONFIG_PATH = Path(os.getenv("CANVAS_TUI_CONFIG") or default_config_path())
_file_config = load_config_file(CONFIG_PATH)

# Canvas API Configuration (environment wins over the config file)
CANVAS_BASE_URL = os.getenv("CANVAS_URL") or _file_config.get("canvas_url") or DEFAULT_CANVAS_URL
CANVAS_TOKEN = os.getenv("CANVAS_API_TOKEN") or _file_config.get("api_token")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Cache Configuration
CACHE_PATH = os.getenv("CACHE_PATH") or str(default_cache_path())

# Sync Configuration
CALENDAR_WINDOW_DAYS = int(os.getenv("CALENDAR_WINDOW_DAYS", str(_DEFAULT_WINDOW_DAYS)))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()
