from __future__ import annotations

from typing import Any

import orjson


def encode_rpg(rpg: Any) -> str:
    return orjson.dumps(rpg, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def decode_rpg(raw: str | bytes | None) -> dict[str, Any]:
    """Parse a stored record. Anything unreadable comes back as an empty dict,
    which ``ensure_user_rpg`` then fills with defaults."""
    if not raw:
        return {}
    try:
        value = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}
