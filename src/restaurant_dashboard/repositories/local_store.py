"""Persisted client-side state.

A narrow key-value store survives restarts without a backing service. As with
the other repositories, expected failures are logged and reported through
None/False return values instead of exceptions: missing cached state is a
non-fatal degradation.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from restaurant_dashboard.models.admin_models import RestaurantInfo, TableQrCode

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
USER_KEY = "user"
RESTAURANT_INFO_KEY = "restaurantInfo"
QR_CODES_KEY = "qr.codes"
QR_TABLE_COUNT_KEY = "qr.tables.count"
LANGUAGE_KEY = "language"


class KeyValueStore(Protocol):
    """Storage interface for small JSON-serializable values."""

    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent or unreadable."""

    def set(self, key: str, value: Any) -> bool:
        """Store a value. Returns False if it could not be written."""

    def remove(self, key: str) -> bool:
        """Remove a value. Returns False if it could not be removed."""


class InMemoryStore(KeyValueStore):
    """Process-local store, used by tests and when no state file is configured."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> bool:
        self._values[key] = value
        return True

    def remove(self, key: str) -> bool:
        self._values.pop(key, None)
        return True


class JsonFileStore(KeyValueStore):
    """Key-value store backed by a single JSON document on disk.

    The whole document is rewritten on each change. A missing or corrupt file
    reads as empty.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON state file; parent directories are created on write
        """
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            tmp_path.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write state file {self.path}: {e}")
            return False

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Any) -> bool:
        with self._lock:
            data = self._load()
            data[key] = value
            return self._save(data)

    def remove(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return True
            del data[key]
            return self._save(data)


class ClientStateRepository:
    """Typed accessors over the persisted client state."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize repository.

        Args:
            store: Underlying key-value store
        """
        self.store = store

    def get_auth_token(self) -> str | None:
        token = self.store.get(AUTH_TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def save_auth_token(self, token: str) -> bool:
        return self.store.set(AUTH_TOKEN_KEY, token)

    def get_user(self) -> dict[str, Any] | None:
        user = self.store.get(USER_KEY)
        return user if isinstance(user, dict) else None

    def save_user(self, user: dict[str, Any]) -> bool:
        return self.store.set(USER_KEY, user)

    def clear_credentials(self) -> bool:
        """Remove the auth token and user record."""
        token_removed = self.store.remove(AUTH_TOKEN_KEY)
        user_removed = self.store.remove(USER_KEY)
        return token_removed and user_removed

    def get_restaurant_info(self) -> RestaurantInfo | None:
        """Return the last-known display header, or None if absent or invalid."""
        raw = self.store.get(RESTAURANT_INFO_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return RestaurantInfo.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding invalid cached restaurant info: {e}")
            return None

    def save_restaurant_info(self, info: RestaurantInfo) -> bool:
        return self.store.set(RESTAURANT_INFO_KEY, info.model_dump(mode="json"))

    def get_qr_codes(self) -> list[TableQrCode]:
        """Return the persisted QR batch; invalid entries are skipped."""
        raw = self.store.get(QR_CODES_KEY)
        if not isinstance(raw, list):
            return []

        codes = []
        for entry in raw:
            try:
                codes.append(TableQrCode.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid cached QR code: {e}")
        return codes

    def save_qr_codes(self, codes: list[TableQrCode]) -> bool:
        return self.store.set(QR_CODES_KEY, [code.model_dump(mode="json") for code in codes])

    def get_qr_table_count(self) -> int | None:
        count = self.store.get(QR_TABLE_COUNT_KEY)
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            return None
        return count

    def save_qr_table_count(self, count: int) -> bool:
        return self.store.set(QR_TABLE_COUNT_KEY, count)

    def clear_qr_codes(self) -> bool:
        codes_removed = self.store.remove(QR_CODES_KEY)
        count_removed = self.store.remove(QR_TABLE_COUNT_KEY)
        return codes_removed and count_removed

    def get_language(self) -> str | None:
        language = self.store.get(LANGUAGE_KEY)
        return language if isinstance(language, str) and language else None

    def save_language(self, language: str) -> bool:
        return self.store.set(LANGUAGE_KEY, language)
