"""
Serialization utilities for the Polymarket Wallet Watcher.

JSON encoding for decoded ABI values: bytes/HexBytes, uint256 integers,
nested tuples (Order structs), enums and datetimes.

Usage:
    from shared.serialization_utils import ChainValueEncoder
    json.dumps(decoded.args, cls=ChainValueEncoder)
"""

import json
from datetime import datetime
from enum import Enum
from json import JSONEncoder
from typing import Any

from hexbytes import HexBytes


class ChainValueEncoder(JSONEncoder):
    """
    JSON encoder for values produced by eth_abi and web3.py.

    Sources:
    - RFC 7159 section 6 (JSON number limits)
    - IEEE 754-2008 (double precision safe integer limit: 2^53 - 1)
    """

    _MAX_SAFE_INTEGER = 2**53 - 1

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (HexBytes, bytes, bytearray)):
            return "0x" + bytes(obj).hex()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        # web3.py AttributeDict
        if hasattr(obj, "__iter__") and hasattr(obj, "keys"):
            return dict(obj)
        return super().default(obj)

    def encode(self, obj: Any) -> str:
        return super().encode(self._convert(obj))

    def _convert(self, obj: Any) -> Any:
        """Recursively stringify unsafe integers and hex-encode bytes nested in containers."""
        if isinstance(obj, dict):
            return {k: self._convert(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [self._convert(item) for item in obj]
        if isinstance(obj, (HexBytes, bytes, bytearray)):
            return "0x" + bytes(obj).hex()
        if isinstance(obj, bool):
            return obj
        if isinstance(obj, int) and (obj > self._MAX_SAFE_INTEGER or obj < -self._MAX_SAFE_INTEGER):
            return str(obj)
        return obj


def to_json(obj: Any) -> str:
    """Serialize ``obj`` with ChainValueEncoder."""
    return json.dumps(obj, cls=ChainValueEncoder)
