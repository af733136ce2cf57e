from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import PersistenceError
from .models import ChatMessage

logger = logging.getLogger(__name__)

SELECTION_KEY = "selectedProductIds"
TRANSCRIPT_KEY = "chatHistory"

_MESSAGES_ADAPTER = TypeAdapter(List[ChatMessage])


class LocalStore:
    """
    Small persistent key/value store with the browser ``localStorage`` API.

    Values are strings; callers do their own JSON encoding.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._init_store()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_store(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?",
                (key,),
            ).fetchone()
        return None if row is None else str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO local_storage(key, value)
                VALUES (?, ?)
                ON CONFLICT(key)
                DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            conn.commit()


def save_selection(store: LocalStore, product_ids: Iterable[int]) -> None:
    store.set_item(SELECTION_KEY, json.dumps(list(product_ids)))


def load_selection(store: LocalStore) -> List[int]:
    """
    Read the persisted selection, keeping first-seen order.

    Raises ``PersistenceError`` when the stored value is not a JSON array
    of integers.
    """
    raw = store.get_item(SELECTION_KEY)
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"{SELECTION_KEY} is not valid JSON: {exc}") from exc
    if not isinstance(data, list) or not all(
        isinstance(item, int) and not isinstance(item, bool) for item in data
    ):
        raise PersistenceError(f"{SELECTION_KEY} must be a JSON array of integers")
    return list(dict.fromkeys(data))


def save_transcript(store: LocalStore, messages: Iterable[ChatMessage]) -> None:
    store.set_item(
        TRANSCRIPT_KEY,
        json.dumps([m.model_dump() for m in messages], ensure_ascii=False),
    )


def load_transcript(store: LocalStore) -> List[ChatMessage]:
    raw = store.get_item(TRANSCRIPT_KEY)
    if raw is None:
        return []
    try:
        return _MESSAGES_ADAPTER.validate_json(raw)
    except PydanticValidationError as exc:
        raise PersistenceError(f"{TRANSCRIPT_KEY} is corrupt: {exc.error_count()} error(s)") from exc
