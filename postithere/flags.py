"""Operator-controlled boolean flags stored in the `config` collection.

Documents look like `{"key": "allowRegistration", "value": true}`. Flags are
read on every use so operators can flip them on a running service.
"""

from __future__ import annotations

from pymongo.database import Database
from pymongo.errors import PyMongoError

from postithere.db import CONFIG_COLLECTION, find_document, update_document
from postithere.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[flags] {msg}")


class ConfigStore:
    def __init__(self, db: Database):
        self._db = db

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return the flag value, or `default` if it is missing, not a bool or unreadable."""
        try:
            doc = find_document(self._db, CONFIG_COLLECTION, {"key": key})
        except PyMongoError as e:
            _debug(f"Could not read flag {key}: {e.__class__.__name__}")
            return default
        if doc is None:
            return default
        value = doc.get("value")
        if not isinstance(value, bool):
            return default
        return value

    def set_bool(self, key: str, value: bool) -> None:
        update_document(
            self._db,
            CONFIG_COLLECTION,
            {"key": key},
            {"$set": {"value": bool(value), "updated_at": utcnow_iso()}},
            upsert=True,
        )
        _debug(f"Set {key}={bool(value)}")


class RegistrationGate:
    """Decides whether new accounts may be created. Fails closed."""

    def __init__(self, store: ConfigStore, flag_key: str = "allowRegistration"):
        self._store = store
        self.flag_key = flag_key

    def is_registration_open(self) -> bool:
        return self._store.get_bool(self.flag_key, default=False)

    def set_registration_open(self, value: bool) -> None:
        self._store.set_bool(self.flag_key, value)
