"""Durable history and theme preference storage.

Values are kept in a small string key-value storage, one key per value:

- ``ai_image_history`` holds the JSON-serialized history, newest first
- ``ai_image_theme`` holds ``"dark"`` or ``"light"``

Every history mutation rewrites the whole sequence. Storage failures are
logged and never interrupt generation: reads fall back to defaults and writes
keep the in-memory state.
"""

import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from creative_studio.core.exceptions import PersistenceError
from creative_studio.core.models import GenerationResult, HistoryEntry, Theme

logger = logging.getLogger(__name__)

HISTORY_KEY = "ai_image_history"
THEME_KEY = "ai_image_theme"


class KeyValueStorage(ABC):
    """Minimal durable string storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key``; absent keys are ignored."""


class MemoryStorage(KeyValueStorage):
    """Process-local storage, used for ephemeral sessions and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class FileStorage(KeyValueStorage):
    """Stores each key as a UTF-8 file inside a directory.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written value behind.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(f"Failed to remove {path}: {e}") from e


class PersistenceStore:
    """Generation history and theme preference backed by durable storage.

    Both values are read once when the store is created.

    Attributes:
        storage: Underlying key-value storage
        max_history: Maximum number of history entries kept (None = unbounded)
    """

    def __init__(self, storage: KeyValueStorage, max_history: Optional[int] = 50):
        """Initialize the store and load persisted values.

        Args:
            storage: Durable key-value storage
            max_history: Maximum number of entries to keep in history
        """
        if max_history is not None and max_history < 1:
            raise ValueError("max_history must be at least 1")

        self.storage = storage
        self.max_history = max_history
        self._history: List[HistoryEntry] = self._load_history()
        self._theme: Theme = self._load_theme()
        self._last_id = max((self._id_value(e.id) for e in self._history), default=0)

        logger.info(
            f"Loaded {len(self._history)} history entries, theme: {self._theme.value}"
        )

    @property
    def history(self) -> List[HistoryEntry]:
        """History entries, most recent first."""
        return list(self._history)

    @property
    def theme(self) -> Theme:
        """Current theme preference."""
        return self._theme

    def append(self, entry: HistoryEntry) -> None:
        """Prepend an entry to history and persist the whole sequence.

        Args:
            entry: The entry to add
        """
        self._history.insert(0, entry)
        self._last_id = max(self._last_id, self._id_value(entry.id))

        if self.max_history is not None and len(self._history) > self.max_history:
            dropped = len(self._history) - self.max_history
            self._history = self._history[:self.max_history]
            logger.debug(f"Dropped {dropped} oldest history entries")

        self._save_history()

    def record(self, result: GenerationResult) -> HistoryEntry:
        """Create a history entry for ``result`` and append it.

        Args:
            result: A successful generation result

        Returns:
            The created HistoryEntry
        """
        entry = HistoryEntry.from_result(result, self._next_id())
        self.append(entry)
        return entry

    def clear(self) -> None:
        """Empty history and remove the persisted value."""
        self._history = []
        try:
            self.storage.remove_item(HISTORY_KEY)
        except PersistenceError as e:
            logger.warning(f"Failed to clear persisted history: {e}")
        logger.info("History cleared")

    def set_theme(self, theme: Union[Theme, str]) -> Theme:
        """Persist a new theme preference.

        Args:
            theme: Theme or its string value

        Returns:
            The stored Theme

        Raises:
            ValueError: If ``theme`` is not "dark" or "light"
        """
        self._theme = Theme(theme)
        try:
            self.storage.set_item(THEME_KEY, self._theme.value)
        except PersistenceError as e:
            logger.warning(f"Failed to persist theme: {e}")
        return self._theme

    def toggle_theme(self) -> Theme:
        """Switch between dark and light."""
        return self.set_theme(Theme.LIGHT if self._theme is Theme.DARK else Theme.DARK)

    def _next_id(self) -> str:
        """Time-derived id, strictly greater than every id handed out so far."""
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return str(self._last_id)

    @staticmethod
    def _id_value(entry_id: str) -> int:
        try:
            return int(entry_id)
        except ValueError:
            return 0

    def _load_history(self) -> List[HistoryEntry]:
        try:
            raw = self.storage.get_item(HISTORY_KEY)
        except PersistenceError as e:
            logger.warning(f"Failed to read history, starting empty: {e}")
            return []

        if raw is None:
            return []

        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError("history is not a list")
            return [HistoryEntry.model_validate(item) for item in items]
        except (ValueError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable history: {e}")
            return []

    def _load_theme(self) -> Theme:
        try:
            raw = self.storage.get_item(THEME_KEY)
        except PersistenceError as e:
            logger.warning(f"Failed to read theme, using dark: {e}")
            return Theme.DARK

        if raw is None:
            return Theme.DARK

        try:
            return Theme(raw.strip())
        except ValueError:
            logger.warning(f"Ignoring unknown theme value: {raw!r}")
            return Theme.DARK

    def _save_history(self) -> None:
        payload = json.dumps([entry.to_json_dict() for entry in self._history])
        try:
            self.storage.set_item(HISTORY_KEY, payload)
        except PersistenceError as e:
            logger.warning(f"Failed to persist history: {e}")
