from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from .config import get_settings
from .storage import append_event, history_path, read_json, write_json_atomic
from .types import AttributeRecord, HistoryEntry, HistoryFile


logger = logging.getLogger(__name__)

_HISTORY_LOCK = threading.RLock()


class HistoryStore:
    """Most-recent-first list of past identifications, capped at ``max_entries``."""

    def __init__(self, path: Path, *, max_entries: int = 5):
        if max_entries < 1:
            raise ValueError('max_entries must be at least 1')
        self.path = path
        self.max_entries = max_entries

    def load(self) -> list[HistoryEntry]:
        with _HISTORY_LOCK:
            if not self.path.exists():
                return []
            try:
                payload = read_json(self.path)
                history = HistoryFile.model_validate(payload)
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                logger.warning('Failed to parse history from %s, treating it as empty: %s', self.path, exc)
                return []
        return history.entries[: self.max_entries]

    def _save(self, entries: list[HistoryEntry]) -> None:
        history = HistoryFile(entries=entries)
        write_json_atomic(self.path, history.model_dump(mode='json', by_alias=True))

    def add(self, *, image: str, result: AttributeRecord) -> HistoryEntry:
        entry = HistoryEntry(image=image, result=result)
        with _HISTORY_LOCK:
            entries = [entry, *self.load()][: self.max_entries]
            self._save(entries)
        append_event('history_added', entry_id=entry.id, common_name=result.common_name)
        return entry

    def get(self, entry_id: str) -> HistoryEntry | None:
        token = str(entry_id or '').strip()
        for entry in self.load():
            if entry.id == token:
                return entry
        return None

    def latest(self) -> HistoryEntry | None:
        entries = self.load()
        return entries[0] if entries else None

    def clear(self) -> None:
        with _HISTORY_LOCK:
            self.path.unlink(missing_ok=True)
        append_event('history_cleared')


def get_history_store() -> HistoryStore:
    settings = get_settings()
    return HistoryStore(history_path(), max_entries=settings.history_max_entries)
