"""Runtime settings read from environment variables.

    MUSHCODE_DATA_PATH             knowledge JSON directory (default: bundled package data)
    MUSHCODE_CACHE_ENABLED         "true"/"false" (default true)
    MUSHCODE_CACHE_SIZE            max cached searches (default 1000, at least 1)
    MUSHCODE_CACHE_TTL             seconds a cached search stays fresh (default 300)
    MUSHCODE_CACHE_SWEEP_INTERVAL  seconds between expiry sweeps (default 60, 0 = off)
    MUSHCODE_LOG_LEVEL             logging level name (default INFO)
    MUSHCODE_MAX_INPUT_LENGTH      max characters in a free-text query (default 10000)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path(__file__).parent / "data" / "knowledge"


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("Ignoring %s=%d (must be >= %d), using %d",
                       name, value, minimum, default)
        return default
    return value


def _env_float(name: str, default: float, minimum: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number), using %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("Ignoring %s=%s (must be >= %s), using %s",
                       name, value, minimum, default)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    data_path: Path = field(default_factory=lambda: DEFAULT_DATA_PATH)
    cache_enabled: bool = True
    cache_size: int = 1000
    cache_ttl: float = 300.0
    cache_sweep_interval: float = 60.0
    log_level: str = "INFO"
    max_input_length: int = 10_000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_path=Path(os.environ.get("MUSHCODE_DATA_PATH") or DEFAULT_DATA_PATH),
            cache_enabled=_env_bool("MUSHCODE_CACHE_ENABLED", True),
            cache_size=_env_int("MUSHCODE_CACHE_SIZE", 1000, minimum=1),
            cache_ttl=_env_float("MUSHCODE_CACHE_TTL", 300.0, minimum=0),
            cache_sweep_interval=_env_float("MUSHCODE_CACHE_SWEEP_INTERVAL", 60.0, minimum=0),
            log_level=(os.environ.get("MUSHCODE_LOG_LEVEL") or "INFO").upper(),
            max_input_length=_env_int("MUSHCODE_MAX_INPUT_LENGTH", 10_000, minimum=1),
        )
