import os
from dataclasses import dataclass
from functools import lru_cache


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None and value.strip() else default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None and value.strip() else default


def _get_env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    default_max: int
    default_window: str
    store_backend: str
    redis_url: str
    key_prefix: str
    batch_cache_enabled: bool
    trust_forwarded: bool


@lru_cache
def get_settings() -> Settings:
    return Settings(
        default_max=_get_env_int("RATE_LIMIT_DEFAULT_MAX", 5),
        default_window=_get_env("RATE_LIMIT_DEFAULT_WINDOW", "60s"),
        store_backend=_get_env("RATE_LIMIT_STORE", "memory").strip().lower(),
        redis_url=_get_env("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0"),
        key_prefix=_get_env("RATE_LIMIT_KEY_PREFIX", "redis-store-id::"),
        batch_cache_enabled=_get_env_bool("RATE_LIMIT_BATCH_CACHE", False),
        trust_forwarded=_get_env_bool("RATE_LIMIT_TRUST_FORWARDED", False),
    )
