"""
Configuration loader for the Polymarket Wallet Watcher.

Provides centralized configuration management: JSON files in config/ for
static defaults, with .env / environment overrides for deployment keys.

Usage:
    from config.loader import get_config, load_watcher_settings

    config = get_config()
    chain_config = config.get_chain_config(137)
    settings = load_watcher_settings()
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from shared.constants import (
    CTF_EXCHANGE_ADDRESS,
    DEFAULT_BOT_NAME,
    DEFAULT_EXPLORER_HOST,
    DEFAULT_WATCH_MODE,
    POLYGON_CHAIN_ID,
)
from shared.types import WatcherSettings, WatchMode

load_dotenv()

# Resolve config directory relative to this file
_CONFIG_DIR = Path(__file__).parent
_PROJECT_ROOT = _CONFIG_DIR.parent


def _load_json(filepath: Path) -> Dict[str, Any]:
    """Load a JSON config file. Returns empty dict if file doesn't exist."""
    try:
        with open(filepath, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"[CONFIG_WARN] Config file not found: {filepath}")
        return {}
    except json.JSONDecodeError as e:
        print(f"[CONFIG_ERROR] Invalid JSON in {filepath}: {e}")
        return {}


def get_env_var(var_name: str, default_value: Any, var_type: type) -> Any:
    """Get environment variable with type conversion and fallback."""
    value = os.getenv(var_name, None)
    if value is None:
        return default_value
    try:
        if var_type == bool:
            return value.lower() in ("true", "1", "yes")
        return var_type(value)
    except (ValueError, TypeError):
        return default_value


def parse_target_list(raw: str) -> List[str]:
    """
    Split a comma-separated wallet list into trimmed entries.

    Empty entries are dropped; order is preserved. Case is kept so the
    EIP-55 checksum of mixed-case entries can still be verified; validation
    and lower-casing happen in config/validate.py and core/address_registry.py.
    """
    return [part.strip() for part in raw.split(",") if part.strip()]


class ConfigLoader:
    """
    Central configuration manager for the watcher.

    Loads configuration from JSON files in the config/ directory.
    All accessor methods are cached via @lru_cache.
    """

    _instance: Optional["ConfigLoader"] = None

    def __init__(self):
        self._config_dir = _CONFIG_DIR
        self._project_root = _PROJECT_ROOT

    @classmethod
    def get_instance(cls) -> "ConfigLoader":
        """Singleton accessor."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------
    # Core config file loaders (cached)
    # ------------------------------------------------------------------

    @lru_cache(maxsize=4)
    def get_chain_config(self, chain_id: int = POLYGON_CHAIN_ID) -> Dict[str, Any]:
        """Load chain-specific config (Polygon = 137)."""
        return _load_json(self._config_dir / "chains" / f"{chain_id}.json")

    @lru_cache(maxsize=1)
    def get_app_config(self) -> Dict[str, Any]:
        """Load general application settings (display name, mode, logging)."""
        return _load_json(self._config_dir / "app.json")

    @lru_cache(maxsize=1)
    def get_timing_config(self) -> Dict[str, Any]:
        """Load block heartbeat and alert suppression settings."""
        return _load_json(self._config_dir / "timing.json")

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Clear all cached configurations (useful for testing)."""
        for method_name in dir(self):
            method = getattr(self, method_name)
            if hasattr(method, "cache_clear"):
                method.cache_clear()


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

def get_config() -> ConfigLoader:
    """Get the singleton ConfigLoader instance."""
    return ConfigLoader.get_instance()


def load_watcher_settings() -> WatcherSettings:
    """
    Build WatcherSettings from the environment with JSON fallbacks.

    TARGET_WALLETS (comma-separated) takes precedence over TARGET_WALLET.
    An unknown WATCH_MODE yields ``watch_mode=None`` so validation can
    report it instead of silently picking a mode.
    """
    cfg = get_config()
    app_cfg = cfg.get_app_config()
    chain_cfg = cfg.get_chain_config(POLYGON_CHAIN_ID)

    raw_targets = os.getenv("TARGET_WALLETS") or os.getenv("TARGET_WALLET") or ""

    default_exchange = chain_cfg.get("contracts", {}).get("ctf_exchange", CTF_EXCHANGE_ADDRESS)
    default_explorer = chain_cfg.get("explorer_host", DEFAULT_EXPLORER_HOST)

    raw_mode = get_env_var(
        "WATCH_MODE", app_cfg.get("watch_mode", DEFAULT_WATCH_MODE), str
    ).strip().lower()
    try:
        watch_mode: Optional[WatchMode] = WatchMode(raw_mode)
    except ValueError:
        watch_mode = None

    return WatcherSettings(
        stream_url=get_env_var("ALCHEMY_WSS_URL", "", str).strip(),
        exchange_address=get_env_var("CTF_EXCHANGE_ADDRESS", default_exchange, str).strip(),
        target_wallets=tuple(parse_target_list(raw_targets)),
        watch_mode=watch_mode,
        bot_name=get_env_var("BOT_NAME", app_cfg.get("bot_name", DEFAULT_BOT_NAME), str),
        explorer_host=get_env_var("EXPLORER_HOST", default_explorer, str).strip(),
        telegram_token=get_env_var("TELEGRAM_BOT_TOKEN", "", str).strip(),
        telegram_chat_id=get_env_var("TELEGRAM_CHAT_ID", "", str).strip(),
        raw_watch_mode=raw_mode,
    )
