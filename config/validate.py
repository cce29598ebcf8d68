"""
Startup validation for the Polymarket Wallet Watcher.

Checks the environment-derived WatcherSettings and the static JSON config
before the block subscription starts. Run at startup to fail fast on
misconfiguration.
"""

from typing import Any

from config.loader import get_config, load_watcher_settings
from core.address_registry import is_valid_address
from shared.constants import POLYGON_CHAIN_ID
from shared.types import WatcherSettings, WatchMode


class ConfigValidationError(ValueError):
    """Raised when a required config key is missing or invalid."""

    pass


def _check_keys(config: dict[str, Any], required_keys: list[str], config_name: str) -> list[str]:
    """Check that all required keys exist in a config dict. Returns list of missing keys."""
    missing = []
    for key in required_keys:
        parts = key.split(".")
        current = config
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                missing.append(f"{config_name}: missing {key}")
                break
            current = current[part]
    return missing


def validate_chain_config(config: dict[str, Any]) -> list[str]:
    """Validate chains/137.json has required fields."""
    return _check_keys(
        config,
        [
            "chain_id",
            "explorer_host",
            "contracts.ctf_exchange",
        ],
        "chains/137.json",
    )


def validate_watcher_settings(settings: WatcherSettings) -> list[str]:
    """
    Validate environment-derived settings. Returns list of problems.

    A missing stream endpoint, an empty or malformed target list, a malformed
    exchange address and an unknown watch mode are all fatal. Missing
    Telegram credentials are not: alerting is simply disabled.
    """
    errors: list[str] = []

    if not settings.stream_url:
        errors.append("ALCHEMY_WSS_URL: stream endpoint is not set")

    if not settings.target_wallets:
        errors.append("TARGET_WALLETS/TARGET_WALLET: no target wallet configured")
    for wallet in settings.target_wallets:
        if not is_valid_address(wallet):
            errors.append(f"TARGET_WALLETS: invalid address {wallet!r}")

    if not is_valid_address(settings.exchange_address):
        errors.append(f"CTF_EXCHANGE_ADDRESS: invalid address {settings.exchange_address!r}")

    if settings.watch_mode is None:
        allowed = ", ".join(m.value for m in WatchMode)
        errors.append(f"WATCH_MODE: unknown mode {settings.raw_watch_mode!r} (expected {allowed})")

    return errors


def validate_all_configs(settings: WatcherSettings | None = None) -> WatcherSettings:
    """
    Validate static config and environment settings.

    Returns the validated settings. Raises ConfigValidationError with every
    problem listed if anything fatal is found.
    """
    if settings is None:
        settings = load_watcher_settings()

    all_errors: dict[str, list[str]] = {}

    chain_cfg = get_config().get_chain_config(POLYGON_CHAIN_ID)
    if chain_cfg:
        chain_errors = validate_chain_config(chain_cfg)
        if chain_errors:
            all_errors["chains/137.json"] = chain_errors

    env_errors = validate_watcher_settings(settings)
    if env_errors:
        all_errors["environment"] = env_errors

    if all_errors:
        lines = ["Configuration validation failed:"]
        for source, errors in all_errors.items():
            lines.append(f"\n  {source}:")
            for error in errors:
                lines.append(f"    - {error}")
        raise ConfigValidationError("\n".join(lines))

    return settings
