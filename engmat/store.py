"""
Persistence facade.

`Store` is the capability interface the rest of the app talks to. Two backends
implement it: `LocalStore` (JSON documents in a data directory) and `SqlStore`
(SQLModel tables on any SQLAlchemy URL). `open_store` picks one at startup.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from .config import AppConfig
from .db import create_db_and_tables, get_engine, get_session
from .db_models import OrderRow, QuoteRow, SettingsRow
from .models import Order, Quote, Settings

logger = logging.getLogger(__name__)

QUOTES = "quotes"
ORDERS = "orders"

RECORD_TYPES: Dict[str, Type] = {QUOTES: Quote, ORDERS: Order}

Record = Union[Quote, Order]
RecordsCallback = Callable[[List[Record]], None]
SettingsCallback = Callable[[Settings], None]


class PersistenceError(Exception):
    """A backend could not read or write."""


class RecordNotFound(PersistenceError):
    pass


def _check_kind(kind: str) -> None:
    if kind not in RECORD_TYPES:
        raise ValueError(f"Unknown record type: {kind!r}")


def _callback_ref(callback: Callable) -> Callable[[], Optional[Callable]]:
    # Bound methods are held weakly so an abandoned subscriber drops out on its own.
    if hasattr(callback, "__self__") and hasattr(callback, "__func__"):
        return weakref.WeakMethod(callback)
    return lambda: callback


# ---------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------
class Store(ABC):
    """
    Uniform add/update/delete/subscribe over quotes, orders and settings.

    Subscribers get the current snapshot when they subscribe and a fresh one
    after every successful write of that kind. A store is shared by every
    browser session, so subscriptions made with bound methods only last as long
    as their owner does.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[[], Optional[Callable]]]] = {
            QUOTES: [], ORDERS: [], "settings": []
        }
        self._lock = threading.RLock()

    # -- backend hooks --
    @abstractmethod
    def _load(self, kind: str) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def _insert(self, kind: str, data: Dict[str, Any]) -> None: ...

    @abstractmethod
    def _replace(self, kind: str, data: Dict[str, Any]) -> None: ...

    @abstractmethod
    def _remove(self, kind: str, record_id: str) -> None: ...

    @abstractmethod
    def _load_settings(self) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def _save_settings(self, data: Dict[str, Any]) -> None: ...

    # -- reads --
    def records(self, kind: str) -> List[Record]:
        _check_kind(kind)
        cls = RECORD_TYPES[kind]
        return [cls.from_dict(d) for d in self._load(kind)]

    def settings(self) -> Settings:
        return Settings.from_dict(self._load_settings())

    # -- subscriptions --
    def subscribe(self, kind: str, callback: RecordsCallback) -> Callable[[], None]:
        _check_kind(kind)
        return self._subscribe(kind, callback, lambda: self.records(kind))

    def subscribe_settings(self, callback: SettingsCallback) -> Callable[[], None]:
        return self._subscribe("settings", callback, self.settings)

    def _subscribe(self, kind: str, callback: Callable, snapshot: Callable) -> Callable[[], None]:
        ref = _callback_ref(callback)
        with self._lock:
            self._live(kind)
            self._subscribers[kind].append(ref)
        callback(snapshot())
        return lambda: self._unsubscribe(kind, ref)

    def _unsubscribe(self, kind: str, ref: Callable[[], Optional[Callable]]) -> None:
        with self._lock:
            self._subscribers[kind] = [r for r in self._subscribers[kind] if r is not ref and r() is not None]

    def _live(self, kind: str) -> List[Callable]:
        """Current callbacks of `kind`; dead references are dropped."""
        with self._lock:
            pairs = [(ref, ref()) for ref in self._subscribers[kind]]
            self._subscribers[kind] = [ref for ref, cb in pairs if cb is not None]
            return [cb for _, cb in pairs if cb is not None]

    def subscriber_count(self, kind: str) -> int:
        return len(self._live(kind))

    def _notify(self, kind: str) -> None:
        callbacks = self._live(kind)
        if not callbacks:
            return
        snapshot = self.settings() if kind == "settings" else self.records(kind)
        for callback in callbacks:
            callback(snapshot)

    def _notify_after_write(self, kind: str) -> None:
        # The write itself has succeeded by now.
        try:
            self._notify(kind)
        except PersistenceError:
            logger.exception("Saved %s but could not refresh subscribers", kind)

    def refresh(self) -> None:
        """Re-read everything and push it to subscribers."""
        for kind in list(self._subscribers):
            self._notify(kind)

    # -- writes --
    def add(self, kind: str, record: Record) -> None:
        _check_kind(kind)
        self._insert(kind, record.to_dict())
        logger.info("Added %s %s", kind, record.id)
        self._notify_after_write(kind)

    def update(self, kind: str, record: Record) -> None:
        _check_kind(kind)
        self._replace(kind, record.to_dict())
        logger.info("Updated %s %s", kind, record.id)
        self._notify_after_write(kind)

    def delete(self, kind: str, record_id: str) -> None:
        _check_kind(kind)
        self._remove(kind, record_id)
        logger.info("Deleted %s %s", kind, record_id)
        self._notify_after_write(kind)

    def update_settings(self, settings: Settings) -> None:
        self._save_settings(settings.to_dict())
        logger.info("Settings saved")
        self._notify_after_write("settings")


# ---------------------------------------------------------------------
# Local JSON documents
# ---------------------------------------------------------------------
class LocalStore(Store):
    """One JSON file per key under `data_dir`; reads and writes happen inline."""

    def __init__(self, data_dir: Union[str, Path]) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def read_json(self, key: str, default: Any) -> Any:
        p = self._path(key)
        if not p.exists():
            return default
        try:
            with open(p, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read {p}: {exc}") from exc

    def write_json(self, key: str, data: Any) -> None:
        p = self._path(key)
        tmp = p.with_suffix(".json.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, p)
        except (OSError, TypeError) as exc:
            raise PersistenceError(f"Could not write {p}: {exc}") from exc

    def _load(self, kind: str) -> List[Dict[str, Any]]:
        return self.read_json(kind, [])

    def _insert(self, kind: str, data: Dict[str, Any]) -> None:
        items = self._load(kind)
        if any(d.get("id") == data["id"] for d in items):
            raise PersistenceError(f"{kind} {data['id']} already exists")
        items.append(data)
        self.write_json(kind, items)

    def _replace(self, kind: str, data: Dict[str, Any]) -> None:
        items = self._load(kind)
        idx = next((i for i, d in enumerate(items) if d.get("id") == data["id"]), None)
        if idx is None:
            raise RecordNotFound(f"{kind} {data['id']} not found")
        items[idx] = data
        self.write_json(kind, items)

    def _remove(self, kind: str, record_id: str) -> None:
        items = self._load(kind)
        kept = [d for d in items if d.get("id") != record_id]
        if len(kept) == len(items):
            raise RecordNotFound(f"{kind} {record_id} not found")
        self.write_json(kind, kept)

    def _load_settings(self) -> Optional[Dict[str, Any]]:
        return self.read_json("settings", None)

    def _save_settings(self, data: Dict[str, Any]) -> None:
        self.write_json("settings", data)


# ---------------------------------------------------------------------
# SQL database
# ---------------------------------------------------------------------
ROW_TYPES = {QUOTES: QuoteRow, ORDERS: OrderRow}


class SqlStore(Store):
    """Records kept in SQLModel tables; `refresh()` picks up other writers."""

    def __init__(self, engine) -> None:
        super().__init__()
        self.engine = engine
        try:
            create_db_and_tables(engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create tables: {exc}") from exc

    @classmethod
    def from_url(cls, db_url: str) -> "SqlStore":
        return cls(get_engine(db_url))

    def _load(self, kind: str) -> List[Dict[str, Any]]:
        row_type = ROW_TYPES[kind]
        try:
            with get_session(self.engine) as s:
                return [row.model_dump() for row in s.exec(select(row_type)).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read {kind}: {exc}") from exc

    def _insert(self, kind: str, data: Dict[str, Any]) -> None:
        try:
            with get_session(self.engine) as s:
                s.add(ROW_TYPES[kind](**data))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not add {kind} {data.get('id')}: {exc}") from exc

    def _replace(self, kind: str, data: Dict[str, Any]) -> None:
        try:
            with get_session(self.engine) as s:
                row = s.get(ROW_TYPES[kind], data["id"])
                if row is None:
                    raise RecordNotFound(f"{kind} {data['id']} not found")
                for key, value in data.items():
                    setattr(row, key, value)
                s.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update {kind} {data.get('id')}: {exc}") from exc

    def _remove(self, kind: str, record_id: str) -> None:
        try:
            with get_session(self.engine) as s:
                row = s.get(ROW_TYPES[kind], record_id)
                if row is None:
                    raise RecordNotFound(f"{kind} {record_id} not found")
                s.delete(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete {kind} {record_id}: {exc}") from exc

    def _load_settings(self) -> Optional[Dict[str, Any]]:
        try:
            with get_session(self.engine) as s:
                row = s.get(SettingsRow, "general_settings")
                return {"lead_times": row.lead_times, "targets": row.targets} if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read settings: {exc}") from exc

    def _save_settings(self, data: Dict[str, Any]) -> None:
        try:
            with get_session(self.engine) as s:
                row = s.get(SettingsRow, "general_settings") or SettingsRow()
                row.lead_times = dict(data["lead_times"])
                row.targets = dict(data["targets"])
                s.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save settings: {exc}") from exc


# ---------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------
def open_store(config: AppConfig) -> Store:
    if config.uses_database:
        logger.info("Using database store")
        return SqlStore.from_url(config.db_url)
    logger.info("Using local store at %s", config.data_dir)
    return LocalStore(config.data_dir)
