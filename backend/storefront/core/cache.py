"""In-memory cache for the public storefront listings (no Redis)."""
import json
import time
from typing import Any, Optional, Dict, Tuple

from storefront.core.config import settings

CACHE_PREFIX_PINCODES = "pincodes"
CACHE_PREFIX_PROMOTIONS = "promotions"

_memory: Dict[str, Tuple[float, str]] = {}  # key -> (expires_at, json_value)


def cache_get(key: str) -> Optional[Any]:
    now = time.time()
    if key not in _memory:
        return None
    expires_at, raw = _memory[key]
    if now > expires_at:
        del _memory[key]
        return None
    return json.loads(raw)


def cache_set(key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
    if ttl_seconds is None:
        ttl_seconds = settings.STOREFRONT_CACHE_TTL
    if ttl_seconds <= 0:
        return
    _memory[key] = (time.time() + ttl_seconds, json.dumps(value, default=str))


def cache_delete_pattern(prefix: str) -> None:
    for k in [k for k in _memory if k.startswith(prefix)]:
        del _memory[k]


def cache_clear() -> None:
    _memory.clear()
