"""
utils/config_store.py — Saved report configurations.

All saved configs are one JSON list stored under a single key of a
key-value backend:
- SettingsBackend: the SQLite settings table (database.py)
- MemoryBackend:   a plain dict, for tests and one-off scripts

Operations: list, get, save (append with new id + timestamp), delete,
toggle favorite. There is no in-place edit: replace = delete + save.
A stored value that can't be parsed reads as "no saved configs".
"""

import json
import logging
import uuid
from datetime import datetime, timezone

import database
from models import ReportConfig

logger = logging.getLogger(__name__)

SAVED_REPORTS_KEY = 'saved_reports'


class SettingsBackend:
    """Key-value access to the SQLite settings table."""

    def get(self, key):
        return database.get_setting(key)

    def set(self, key, value):
        database.update_setting(key, value)


class MemoryBackend:
    """In-process key-value store."""

    def __init__(self, initial=None):
        self.values = dict(initial or {})

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value


class ReportConfigStore:
    """CRUD over the saved report configuration list."""

    def __init__(self, backend=None, key=SAVED_REPORTS_KEY):
        self.backend = backend if backend is not None else SettingsBackend()
        self.key = key

    def _load(self):
        raw = self.backend.get(self.key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError(f"expected a list, got {type(items).__name__}")
            return [ReportConfig.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable saved reports under %r: %s", self.key, exc)
            return []

    def _store(self, configs):
        self.backend.set(self.key, json.dumps([c.to_dict() for c in configs], ensure_ascii=False))

    def list_reports(self):
        return self._load()

    def get_report(self, report_id):
        for config in self._load():
            if config.id == report_id:
                return config
        return None

    def save_report(self, config):
        """Append a copy of config with a fresh id and creation timestamp."""
        configs = self._load()
        saved = ReportConfig.from_dict(config.to_dict())
        saved.id = uuid.uuid4().hex
        saved.created_at = datetime.now(timezone.utc)
        configs.append(saved)
        self._store(configs)
        logger.info("Saved report config %s (%r)", saved.id, saved.name)
        return saved

    def delete_report(self, report_id):
        """Remove by id. Returns True if something was removed."""
        configs = self._load()
        remaining = [c for c in configs if c.id != report_id]
        if len(remaining) == len(configs):
            return False
        self._store(remaining)
        return True

    def toggle_favorite(self, report_id):
        """Flip the favorite flag. Returns the updated config, or None if unknown."""
        configs = self._load()
        updated = None
        for config in configs:
            if config.id == report_id:
                config.is_favorite = not config.is_favorite
                updated = config
        if updated is not None:
            self._store(configs)
        return updated
