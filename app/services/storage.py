# app/services/storage.py
"""
Shared key-value persistence for session, lock and recovery records.

Every tab of a patient's intake talks to the same store. Writers use
``compare_and_swap`` for anything another tab may also write (the lock),
and every change is announced to subscribers as a ``StorageEvent`` so
other tabs can react.
"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.logging_config import get_logger
from app.models import KeyValueEntry

logger = get_logger(__name__)

JsonValue = Dict[str, Any]


@dataclass(frozen=True)
class StorageEvent:
    key: str
    old_value: Optional[JsonValue]
    new_value: Optional[JsonValue]


Listener = Callable[[StorageEvent], None]


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[JsonValue]: ...

    def set(self, key: str, value: JsonValue) -> None: ...

    def remove(self, key: str) -> None: ...

    def compare_and_swap(
        self, key: str, expected: Optional[JsonValue], new: Optional[JsonValue]
    ) -> bool:
        """
        Atomically replace ``expected`` with ``new``. ``expected=None``
        means "key absent"; ``new=None`` deletes. Returns False, changing
        nothing, if the stored value is not ``expected``.
        """
        ...

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every change; returns an unsubscribe callable."""
        ...


def session_key(patient_id: str) -> str:
    return f"intake_session:{patient_id}"


def lock_key(patient_id: str) -> str:
    return f"intake_lock:{patient_id}"


def recovery_key(patient_id: str) -> str:
    return f"intake_error_recovery:{patient_id}"


def _dumps(value: JsonValue) -> str:
    return json.dumps(value, sort_keys=True, default=str)


class _Listeners:
    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def add(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: StorageEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Storage listener failed for key %s", event.key)


# ----------------------------------------------------------------------
# In-memory
# ----------------------------------------------------------------------


class InMemoryKeyValueStore:
    """Thread-safe, same-process store. Values are copied in and out."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._listeners = _Listeners()

    def get(self, key: str) -> Optional[JsonValue]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: JsonValue) -> None:
        with self._lock:
            old = self._data.get(key)
            self._data[key] = _dumps(value)
        self._emit(key, old, value)

    def remove(self, key: str) -> None:
        with self._lock:
            old = self._data.pop(key, None)
        if old is not None:
            self._emit(key, old, None)

    def compare_and_swap(
        self, key: str, expected: Optional[JsonValue], new: Optional[JsonValue]
    ) -> bool:
        with self._lock:
            current = self._data.get(key)
            wanted = _dumps(expected) if expected is not None else None
            if current != wanted:
                return False
            if new is None:
                self._data.pop(key, None)
            else:
                self._data[key] = _dumps(new)
        if current is not None or new is not None:
            self._emit(key, current, new)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)

    def _emit(self, key: str, old_raw: Optional[str], new: Optional[JsonValue]) -> None:
        old = json.loads(old_raw) if old_raw is not None else None
        self._listeners.notify(StorageEvent(key=key, old_value=old, new_value=new))


# ----------------------------------------------------------------------
# SQL
# ----------------------------------------------------------------------


class SqlKeyValueStore:
    """
    ``kv_store`` table. Compare-and-swap is a conditional UPDATE (or an
    INSERT relying on the primary key) so concurrent writers from separate
    processes cannot both win. Change notifications reach listeners in
    this process only.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._listeners = _Listeners()

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Optional[JsonValue]:
        with self._session() as db:
            raw = db.scalar(select(KeyValueEntry.value).where(KeyValueEntry.key == key))
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: JsonValue) -> None:
        raw = _dumps(value)
        with self._session() as db:
            entry = db.get(KeyValueEntry, key)
            old = entry.value if entry is not None else None
            if entry is None:
                db.add(KeyValueEntry(key=key, value=raw))
            else:
                entry.value = raw
            db.commit()
        self._emit(key, old, value)

    def remove(self, key: str) -> None:
        with self._session() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                return
            old = entry.value
            db.delete(entry)
            db.commit()
        self._emit(key, old, None)

    def compare_and_swap(
        self, key: str, expected: Optional[JsonValue], new: Optional[JsonValue]
    ) -> bool:
        with self._session() as db:
            try:
                if expected is None:
                    if new is None:
                        exists = db.scalar(select(KeyValueEntry.key).where(KeyValueEntry.key == key))
                        return exists is None
                    db.execute(insert(KeyValueEntry).values(key=key, value=_dumps(new)))
                    old_raw = None
                else:
                    old_raw = _dumps(expected)
                    condition = (KeyValueEntry.key == key) & (KeyValueEntry.value == old_raw)
                    if new is None:
                        result = db.execute(delete(KeyValueEntry).where(condition))
                    else:
                        result = db.execute(
                            update(KeyValueEntry).where(condition).values(value=_dumps(new))
                        )
                    if result.rowcount != 1:
                        db.rollback()
                        return False
                db.commit()
            except IntegrityError:
                db.rollback()
                return False
        self._emit(key, old_raw, new)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def _emit(self, key: str, old_raw: Optional[str], new: Optional[JsonValue]) -> None:
        old = json.loads(old_raw) if old_raw is not None else None
        self._listeners.notify(StorageEvent(key=key, old_value=old, new_value=new))
