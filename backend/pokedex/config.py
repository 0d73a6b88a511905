import os
from typing import Any, Dict, Optional

# Defaults for every tunable; environment variables of the same name win.
_DEFAULTS: Dict[str, Any] = {
    "POKEAPI_BASE_URL": "https://pokeapi.co/api/v2",
    "POKEAPI_TIMEOUT": 12.0,
    "CATALOG_LIMIT": 2000,
    "FETCH_BATCH_SIZE": 50,
    "FETCH_BATCH_DELAY": 0.1,
    "DESCRIPTION_LANGUAGE": "en",
    # Approximate highest id; only decides whether a detail page links "next".
    "MAX_KNOWN_ID": 1010,
    "CATALOG_SNAPSHOT": None,
}

MOVE_PREFIX = 20
DETAIL_MOVE_COUNT = 15
STAT_MAX = 255
DEFAULT_PAGE_SIZE = 20
PLACEHOLDER_IMAGE = "/static/placeholder.svg"


def get_setting(key: str, default: Optional[Any] = None) -> Any:
    """Read a setting. Precedence: environment -> built-in default -> ``default``.
    Values coming from the environment are coerced to the type of the built-in default.
    """
    fallback = _DEFAULTS.get(key, default)
    raw = os.getenv(key)
    if raw is None or raw == "":
        return fallback
    if isinstance(fallback, bool):
        return raw.lower() in {"1", "true", "yes"}
    if isinstance(fallback, int):
        return int(raw)
    if isinstance(fallback, float):
        return float(raw)
    return raw


def api_base() -> str:
    return str(get_setting("POKEAPI_BASE_URL")).rstrip("/")
