"""
Shared pytest configuration and fixtures for Polymarket Wallet Watcher tests.

Sample addresses and ABI payload builders live in tests/unit/chain_samples.py.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from shared.constants import CTF_EXCHANGE_ADDRESS

# ---------------------------------------------------------------------------
# Config loader fixture (patched singleton)
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config_loader():
    """
    Provide a mock ConfigLoader that returns standard configs.

    Usage in tests:
        def test_something(mock_config_loader):
            mock_config_loader.get_timing_config.return_value = {...}
    """
    loader = MagicMock()
    loader.get_chain_config.return_value = {
        "chain_id": 137,
        "name": "Polygon",
        "explorer_host": "polygonscan.com",
        "contracts": {"ctf_exchange": CTF_EXCHANGE_ADDRESS},
    }
    loader.get_timing_config.return_value = {
        "block_stream": {"block_log_interval": 10},
        "alerts": {"dedup_cache_size": 500},
    }
    loader.get_app_config.return_value = {
        "bot_name": "Polymarket Watcher",
        "watch_mode": "logs",
        "logging": {"log_dir": "logs"},
    }
    return loader


@pytest.fixture
def mock_logger():
    return MagicMock()
