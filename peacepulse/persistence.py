"""
Best-effort persistence for the durable wellness collections.

The chat transcript, sleep entries and journal entries are mirrored to a
key-value store, one key per collection. Each change rewrites the whole
collection. Reads that fail or return unexpected data leave the store's
defaults in place, and failed writes are logged and otherwise ignored: the
in-memory store stays authoritative for the session.
"""

import json
import logging
import os
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError

from .models import ChatMessage, JournalEntry, SleepEntry
from .store import Collection, WellnessStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

STORAGE_KEYS: dict[Collection, str] = {
    Collection.CHAT: "pp_chat_messages",
    Collection.SLEEP: "pp_sleep_entries",
    Collection.JOURNAL: "pp_journal_entries",
}

_ADAPTERS: dict[Collection, TypeAdapter[Any]] = {
    Collection.CHAT: TypeAdapter(list[ChatMessage]),
    Collection.SLEEP: TypeAdapter(list[SleepEntry]),
    Collection.JOURNAL: TypeAdapter(list[JournalEntry]),
}


class KeyValueStore(Protocol):
    """Minimal string key-value storage used by the bridge."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Dictionary-backed storage, lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileKeyValueStore:
    """
    Directory-backed storage writing one ``<key>.json`` file per key.

    Writes go to a temporary file in the same directory, are flushed and
    fsynced, then moved into place with ``os.replace``.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")

        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

        try:
            os.chmod(path, 0o600)
        except OSError:
            pass


def encode_collection(collection: Collection, items: list[BaseModel]) -> str:
    """Serialize a collection into its versioned JSON envelope."""
    adapter = _ADAPTERS[collection]
    payload = {
        "version": SCHEMA_VERSION,
        "items": adapter.dump_python(items, mode="json"),
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_collection(collection: Collection, raw: str) -> list[Any] | None:
    """
    Parse a stored envelope back into records.

    Returns:
        The decoded records, or ``None`` if the value is unreadable, from
        another schema version, or does not match the record shape
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Stored %s is not valid JSON: %s", collection.value, e)
        return None

    if not isinstance(payload, dict) or payload.get("version") != SCHEMA_VERSION:
        logger.warning("Stored %s has an unsupported format", collection.value)
        return None

    try:
        return _ADAPTERS[collection].validate_python(payload.get("items"))
    except ValidationError as e:
        logger.warning(
            "Stored %s does not match the record shape: %s", collection.value, e
        )
        return None


def _first_per_date(entries: list[SleepEntry]) -> list[SleepEntry]:
    """Keep the first entry for each wake date, preserving order."""
    seen: set[date] = set()
    kept = []
    for entry in entries:
        if entry.date in seen:
            logger.debug("Dropping duplicate sleep entry for %s", entry.date)
            continue
        seen.add(entry.date)
        kept.append(entry)
    return kept


class PersistenceBridge:
    """
    Mirrors the chat, sleep and journal collections to a key-value store.

    Call :meth:`attach` once at startup to hydrate the store and start
    writing every subsequent change back.
    """

    def __init__(self, store: WellnessStore, storage: KeyValueStore) -> None:
        self.store = store
        self.storage = storage
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self) -> None:
        """Hydrate each persisted collection, then subscribe to changes."""
        if self._unsubscribe is not None:
            return
        for collection in STORAGE_KEYS:
            self._hydrate(collection)
        self._unsubscribe = self.store.subscribe(self._on_change)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _hydrate(self, collection: Collection) -> None:
        key = STORAGE_KEYS[collection]
        try:
            raw = self.storage.get(key)
        except Exception as e:
            logger.warning("Could not read %s: %s", key, e)
            return
        if not raw:
            return

        items = decode_collection(collection, raw)
        if items is None:
            return
        # An empty saved transcript keeps the greeting.
        if collection is Collection.CHAT and not items:
            return
        if collection is Collection.SLEEP:
            items = _first_per_date(items)
        self.store.hydrate(collection, items)
        logger.debug("Hydrated %d %s records", len(items), collection.value)

    def _on_change(self, changed: frozenset[Collection]) -> None:
        for collection in STORAGE_KEYS:
            if collection in changed:
                self.save(collection)

    def save(self, collection: Collection) -> None:
        """Write the full current collection under its key."""
        key = STORAGE_KEYS[collection]
        try:
            value = encode_collection(collection, self._items(collection))
            self.storage.set(key, value)
        except Exception as e:
            logger.warning("Could not persist %s: %s", key, e)

    def _items(self, collection: Collection) -> list[Any]:
        if collection is Collection.CHAT:
            return self.store.chat_messages
        if collection is Collection.SLEEP:
            return self.store.sleep_entries
        return self.store.journal_entries
