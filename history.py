"""Bounded, persisted translation history."""

from __future__ import annotations

import json
import threading
import time
import uuid
from typing import Any, Callable, Optional

from interfaces import KeyValueStore
from logging_setup import get_logger
from models import HistoryItem, TranslationResult

logger = get_logger("history")

HISTORY_KEY = "translation_history"
HISTORY_CAPACITY = 10


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _item_from_dict(raw: Any) -> Optional[HistoryItem]:
    if not isinstance(raw, dict):
        return None
    original = raw.get("original")
    translated = raw.get("translated")
    if not isinstance(original, str) or not isinstance(translated, str):
        return None
    pronunciation = raw.get("pronunciation")
    context = raw.get("context")
    timestamp = raw.get("timestamp")
    return HistoryItem(
        original=original,
        translated=translated,
        pronunciation=pronunciation if isinstance(pronunciation, str) else None,
        context=context if isinstance(context, str) else None,
        id=str(raw.get("id") or _new_id()),
        timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else 0,
    )


class HistoryStore:
    """Newest-first list of recent translations, saved on every change."""

    def __init__(
        self,
        storage: KeyValueStore,
        capacity: int = HISTORY_CAPACITY,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._storage = storage
        self._capacity = capacity
        self._id_factory = id_factory
        self._clock = clock
        self._items: list[HistoryItem] = []
        self._lock = threading.Lock()

    @property
    def items(self) -> list[HistoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> list[HistoryItem]:
        raw = self._storage.get_item(HISTORY_KEY)
        items: list[HistoryItem] = []
        if raw:
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("history_load_failed", extra={"detail": "stored history is not JSON"})
                decoded = []
            if isinstance(decoded, list):
                items = [item for item in map(_item_from_dict, decoded) if item is not None]
            else:
                logger.warning("history_load_failed", extra={"detail": "stored history is not a list"})
        with self._lock:
            self._items = items[: self._capacity]
            return list(self._items)

    def add(self, result: TranslationResult) -> HistoryItem:
        item = HistoryItem.from_result(result, self._id_factory(), self._clock())
        with self._lock:
            self._items = [item, *self._items][: self._capacity]
            self._save()
        return item

    def clear(self) -> None:
        with self._lock:
            self._items = []
            try:
                self._storage.remove_item(HISTORY_KEY)
            except OSError as exc:
                logger.warning("history_save_failed", extra={"detail": str(exc)})

    def _save(self) -> None:
        """Persist the current list. A failed write keeps the in-memory history."""
        payload = [item.to_dict() for item in self._items]
        try:
            self._storage.set_item(HISTORY_KEY, json.dumps(payload, ensure_ascii=False))
        except OSError as exc:
            logger.warning("history_save_failed", extra={"detail": str(exc)})
