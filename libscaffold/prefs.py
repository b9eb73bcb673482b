"""Directory-local stored preferences.

Prompt answers and the encrypted CI credential are kept in a JSON document
under the destination directory, namespaced like ``{"libscaffold": {...}}``,
so a repeated run offers the previous answers as defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from libscaffold.utils import load_json, save_json

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Key-value store persisted to ``<destination>/<prefs_file>``.

    Every :meth:`set` / :meth:`update` is flushed to disk immediately.
    """

    def __init__(self, path: str | Path, namespace: str = "libscaffold") -> None:
        self.path = Path(path)
        self.namespace = namespace
        self._document: dict[str, Any] = {}
        self._values: dict[str, Any] = {}

    @classmethod
    def load(cls, path: str | Path, namespace: str = "libscaffold") -> "PreferenceStore":
        """Open the store at *path*; a missing or corrupt file yields an empty store."""
        store = cls(path, namespace)
        if not store.path.exists():
            return store
        try:
            document = load_json(store.path)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable preferences file %s: %s", store.path, exc)
            return store

        values = document.get(namespace, {})
        if not isinstance(values, dict):
            logger.warning("Ignoring malformed '%s' section in %s", namespace, store.path)
            values = {}
        store._document = document
        store._values = dict(values)
        return store

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self.save()

    def update(self, values: dict[str, Any]) -> None:
        """Record several answers with a single write."""
        if not values:
            return
        self._values.update(values)
        self.save()

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def save(self) -> None:
        # Other namespaces in the same file are preserved.
        document = {**self._document, self.namespace: self._values}
        save_json(document, self.path)
        self._document = document
