"""Generation history storage for the Studiogen API.

History is a collaborator of the generation service, not part of it: the
service emits one record per successful generation and the HTTP layer
appends it here.  The service never reads history back.

The store is intentionally simple:

- records live in a single ``history.json`` file
- list order is reverse-chronological (newest first)
- a missing, empty or corrupt file loads as an empty history
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


class HistoryStore:
    """File-backed list of past generations.

    Read-modify-write cycles are serialised with a lock so concurrent
    successful generations do not drop each other's records.

    Args:
        path: Location of ``history.json``.  The parent directory is created
            if needed.
        max_records: Oldest records beyond this count are discarded on write.
    """

    def __init__(self, path: Path, *, max_records: int = 1000) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.max_records = max_records
        self._lock = threading.Lock()

    def load(self) -> list[dict]:
        """Return every stored record, newest first."""
        with self._lock:
            return self._read()

    def record(self, entry: dict) -> dict:
        """Prepend *entry* to the history and persist it.

        Args:
            entry: Record dictionary.  Must contain an ``id`` key.

        Returns:
            The stored entry.
        """
        with self._lock:
            entries = self._read()
            entries.insert(0, entry)
            del entries[self.max_records :]
            self._write(entries)
        logger.info("Recorded generation %s in history.", entry.get("id"))
        return entry

    def recent(self, limit: int = DEFAULT_LIMIT) -> list[dict]:
        """Return a summary (``id``, ``image_url``, ``created_at``) of the newest records."""
        limit = max(limit, 0)
        return [
            {
                "id": entry.get("id"),
                "image_url": entry.get("image_url"),
                "created_at": entry.get("created_at"),
            }
            for entry in self.load()[:limit]
        ]

    def get(self, entry_id: str) -> dict | None:
        """Return the full record with *entry_id*, or ``None``."""
        return next((entry for entry in self.load() if entry.get("id") == entry_id), None)

    def _read(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as handle:
                raw_entries = json.load(handle)
        except (OSError, ValueError):
            logger.warning("History file %s is unreadable; treating as empty.", self.path)
            return []

        if not isinstance(raw_entries, list):
            return []
        return [entry for entry in raw_entries if isinstance(entry, dict) and entry.get("id")]

    def _write(self, entries: list[dict]) -> None:
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(entries, handle, indent=2)
