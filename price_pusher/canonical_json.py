"""
Canonical JSON serialization for contract call arguments.

Sorted keys, no whitespace, UTF-8. Identical arguments always encode to
identical bytes, so a rebuilt action hashes the same.
"""

import json
from typing import Any

from price_pusher.errors import SerializationError


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Rules:
    - Keys sorted alphabetically (recursive)
    - No whitespace
    - UTF-8 encoding (no ASCII escapes for non-ASCII chars)
    - NaN and infinities rejected
    """
    try:
        return json.dumps(
            obj,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"value is not JSON-serializable: {e}",
            details={"value": repr(obj)},
        ) from e


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")
