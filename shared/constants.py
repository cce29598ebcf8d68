"""
Shared constants for the Polymarket Wallet Watcher.

Contract addresses, network defaults, and display labels used across all modules.
"""

# ---------------------------------------------------------------------------
# Polygon Network
# ---------------------------------------------------------------------------

POLYGON_CHAIN_ID = 137
DEFAULT_EXPLORER_HOST = "polygonscan.com"

# ---------------------------------------------------------------------------
# Polymarket Addresses (Polygon)
# ---------------------------------------------------------------------------

CTF_EXCHANGE_ADDRESS = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"

# ---------------------------------------------------------------------------
# ABI Layout
# ---------------------------------------------------------------------------

FUNCTION_SELECTOR_SIZE = 4  # bytes4(keccak256(signature))
WORD_SIZE = 32  # ABI word / log topic width
ADDRESS_SIZE = 20

# CTF Exchange Order struct:
# (salt, maker, signer, taker, tokenId, makerAmount, takerAmount,
#  expiration, nonce, feeRateBps, side, signatureType, signature)
ORDER_TUPLE = (
    "(uint256,address,address,address,uint256,uint256,uint256,"
    "uint256,uint256,uint256,uint8,uint8,bytes)"
)

# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

DEFAULT_BOT_NAME = "Polymarket Watcher"
ROLE_LABEL_MAKER = "Maker (Passive)"
ROLE_LABEL_TAKER = "Taker (Active)"
ROLE_LABEL_UNKNOWN = "Unknown"

ALERT_TITLE_EVENT = "TRADE DETECTED (Event)"
ALERT_TITLE_TRANSACTION = "TRADE DETECTED"

# ---------------------------------------------------------------------------
# Default Runtime Values
# ---------------------------------------------------------------------------

DEFAULT_WATCH_MODE = "logs"
DEFAULT_BLOCK_LOG_INTERVAL = 10
DEFAULT_ALERT_DEDUP_CACHE_SIZE = 500
