"""
Key-Value Store Backends
In-memory, JSON file and Redis persistence for session preferences and history
"""

import os
import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

import redis

from geospatial_anchor_service.core.interfaces import KeyValueStore
from geospatial_anchor_service.utils.config import Settings

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, mostly for tests and development"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self.data.get(key)

    def set_string(self, key: str, value: str):
        with self._lock:
            self.data[key] = value

    def has_key(self, key: str) -> bool:
        with self._lock:
            return key in self.data


class JsonFileKeyValueStore(KeyValueStore):
    """
    Preferences file holding one JSON object of string values
    Every write replaces the file atomically so a crash never leaves a partial file
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path} without a JSON object")
            return {}

        return {str(key): str(value) for key, value in data.items()}

    def _flush(self, data: Dict[str, str]):
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)

        temp_fd, temp_path = tempfile.mkstemp(suffix='.json', prefix='.prefs_', dir=str(directory))
        try:
            with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self.data.get(key)

    def set_string(self, key: str, value: str):
        with self._lock:
            updated = dict(self.data)
            updated[key] = value
            self._flush(updated)
            self.data = updated

    def has_key(self, key: str) -> bool:
        with self._lock:
            return key in self.data


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store with a key prefix"""

    def __init__(self, client: redis.Redis, prefix: str = ""):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "", **config) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url, **config), prefix=prefix)

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_string(self, key: str) -> Optional[str]:
        value = self.client.get(self._full_key(key))
        if isinstance(value, bytes):
            return value.decode('utf-8')
        return value

    def set_string(self, key: str, value: str):
        self.client.set(self._full_key(key), value)

    def has_key(self, key: str) -> bool:
        return self.client.exists(self._full_key(key)) > 0

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False


def create_key_value_store(config: Settings) -> KeyValueStore:
    """Build the configured backend"""
    backend = config.STORE_BACKEND

    if backend == "memory":
        store = InMemoryKeyValueStore()
    elif backend == "file":
        store = JsonFileKeyValueStore(config.STORE_FILE_PATH)
    elif backend == "redis":
        if not config.REDIS_URL:
            raise ValueError("REDIS_URL is required for the redis backend")
        store = RedisKeyValueStore.from_url(
            config.REDIS_URL,
            prefix=config.REDIS_KEY_PREFIX,
            **config.get_redis_config()
        )
    else:
        raise ValueError(f"Unknown store backend: {backend}")

    logger.info(f"✅ Using {backend} key-value store")
    return store
