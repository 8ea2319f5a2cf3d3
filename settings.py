from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_MONGODB_URI_ENV = "MONGODB_URI"
_DATABASE_ENV = "DATABASE"
_COLLECTION_ENV = "COLLECTION"
_BACKEND_ENV = "STORE_BACKEND"
_LOCAL_PATH_ENV = "LOCAL_STORE_PATH"
_GRANULARITY_ENV = "STORE_GRANULARITY"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_BACKENDS = ("mongo", "local")
_GRANULARITIES = ("seconds", "minutes", "hours")


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str
    database: str
    collection: str
    backend: str
    local_store_path: Optional[str]
    granularity: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_choice_env(name: str, choices: tuple[str, ...], default: str) -> str:
    candidate = _read_str_env(name, default).lower()
    return candidate if candidate in choices else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        mongodb_uri=_read_str_env(_MONGODB_URI_ENV, "mongodb://localhost:27017/"),
        database=_read_str_env(_DATABASE_ENV, "db"),
        collection=_read_str_env(_COLLECTION_ENV, "coll"),
        backend=_read_choice_env(_BACKEND_ENV, _BACKENDS, "mongo"),
        local_store_path=_read_optional_env(_LOCAL_PATH_ENV, "./tmp/buoy_store.json"),
        granularity=_read_choice_env(_GRANULARITY_ENV, _GRANULARITIES, "minutes"),
        log_level=_read_log_level("INFO"),
    )
