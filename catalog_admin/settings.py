"""Persisted client settings: API domain and admin API key."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from catalog_admin.config import DEFAULT_ADMIN_API_KEY, DEFAULT_API_DOMAIN
from catalog_admin.logging_config import get_logger

__all__ = [
    "Settings",
    "MemoryStore",
    "JSONFileStore",
    "API_DOMAIN_KEY",
    "ADMIN_API_KEY_KEY",
]

API_DOMAIN_KEY = "apiDomain"
ADMIN_API_KEY_KEY = "adminApiKey"

logger = get_logger("settings")


class MemoryStore:
    """In-process key-value store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JSONFileStore:
    """Key-value store backed by a single JSON file.

    Writes go to a temp file in the same directory first and then replace
    the original, so a crash never leaves a half-written settings file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise


class Settings:
    """API domain and admin key, loaded from and saved to a key-value store.

    Usage:
        settings = Settings(JSONFileStore("~/.catalog_admin/settings.json")).load()
        settings.admin_api_key = "secret"
        settings.save()
    """

    def __init__(self, store: Optional[Any] = None) -> None:
        self.store = store if store is not None else MemoryStore()
        self.api_domain: str = DEFAULT_API_DOMAIN
        self.admin_api_key: str = DEFAULT_ADMIN_API_KEY

    def load(self) -> "Settings":
        """Read saved values, keeping defaults for anything not saved."""
        self.api_domain = str(self.store.get(API_DOMAIN_KEY, DEFAULT_API_DOMAIN))
        self.admin_api_key = str(self.store.get(ADMIN_API_KEY_KEY, DEFAULT_ADMIN_API_KEY))
        return self

    def save(self) -> None:
        self.store.set(API_DOMAIN_KEY, self.api_domain)
        self.store.set(ADMIN_API_KEY_KEY, self.admin_api_key)

    @property
    def has_api_key(self) -> bool:
        return bool(self.admin_api_key)

    def __repr__(self) -> str:
        masked = "***" if self.admin_api_key else "''"
        return f"Settings(api_domain={self.api_domain!r}, admin_api_key={masked})"
