"""Article store — the ordered newsletter list and its persistence.

The list order *is* the newsletter order.  The store is small and has one
writer, so every mutation simply rewrites the whole list through the
injected ``ArticleStorage``.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Literal, Protocol

from pydantic import ValidationError

from newsletter.errors import InputError, RecordNotFoundError
from newsletter.models import ArticleRecord

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


class ArticleStorage(Protocol):
    """Persistence capability used by ``ArticleStore``."""

    def load(self) -> list[ArticleRecord]: ...

    def save(self, records: list[ArticleRecord]) -> None: ...


class MemoryStorage:
    """In-process storage; contents vanish with the process."""

    def __init__(self, records: list[ArticleRecord] | None = None) -> None:
        self._records = [r.model_copy(deep=True) for r in records or []]

    def load(self) -> list[ArticleRecord]:
        return [r.model_copy(deep=True) for r in self._records]

    def save(self, records: list[ArticleRecord]) -> None:
        self._records = [r.model_copy(deep=True) for r in records]


class JsonFileStorage:
    """One JSON document holding the camelCase article list.

    Records are validated one by one, so a single unreadable entry is
    skipped rather than discarding the list.  Whenever anything is lost on
    load, the file is first copied to ``<name>.bak`` because the next save
    overwrites it.  Saves go to a temporary file that replaces the document
    in one step.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def _backup(self) -> None:
        try:
            shutil.copy2(self.path, self.backup_path)
        except OSError as exc:
            logger.error("Failed to back up %s: %s", self.path, exc)
            return
        logger.warning("Copied unreadable article data to %s", self.backup_path)

    def load(self) -> list[ArticleRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Failed to load articles from %s: %s", self.path, exc)
            self._backup()
            return []

        if not isinstance(raw, list):
            logger.error("Failed to load articles from %s: expected a list, got %s", self.path, type(raw).__name__)
            self._backup()
            return []

        records: list[ArticleRecord] = []
        for index, item in enumerate(raw):
            try:
                records.append(ArticleRecord.model_validate(item))
            except ValidationError as exc:
                logger.error("Skipping unreadable article %d in %s: %s", index, self.path, exc)
        if len(records) < len(raw):
            self._backup()
        return records

    def save(self, records: list[ArticleRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([r.model_dump(by_alias=True) for r in records], ensure_ascii=False, indent=2)

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d articles to %s", len(records), self.path)


class ArticleStore:
    """Ordered collection of ``ArticleRecord`` keyed by ``id``."""

    def __init__(self, storage: ArticleStorage) -> None:
        self._storage = storage
        self._records: list[ArticleRecord] = storage.load()

    def _commit(self) -> None:
        self._storage.save(self._records)

    def _index_of(self, article_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == article_id:
                return index
        raise RecordNotFoundError(f"Article {article_id} not found")

    def list(self) -> list[ArticleRecord]:
        """Snapshot of the records in newsletter order."""
        return [r.model_copy(deep=True) for r in self._records]

    def get(self, article_id: str) -> ArticleRecord:
        return self._records[self._index_of(article_id)].model_copy(deep=True)

    def add(self, record: ArticleRecord) -> ArticleRecord:
        """Append *record*; an id that is already taken is replaced by a fresh one."""
        if any(r.id == record.id for r in self._records):
            record = record.model_copy(update={"id": ArticleRecord().id})
        self._records.append(record)
        self._commit()
        logger.info("Added article %s (%d total)", record.id, len(self._records))
        return record

    def update(self, article_id: str, record: ArticleRecord) -> ArticleRecord:
        """Replace the record with *article_id* in place; its id is kept."""
        index = self._index_of(article_id)
        record = record.model_copy(update={"id": article_id})
        self._records[index] = record
        self._commit()
        return record

    def remove(self, article_id: str) -> None:
        index = self._index_of(article_id)
        del self._records[index]
        self._commit()
        logger.info("Removed article %s (%d left)", article_id, len(self._records))

    def remove_all(self) -> None:
        self._records = []
        self._commit()
        logger.info("Removed all articles")

    def reorder(self, index: int, direction: Direction) -> None:
        """Swap the record at *index* with its neighbour.

        Moving the first record up or the last record down does nothing.
        """
        if not 0 <= index < len(self._records):
            raise InputError(f"No article at position {index}")
        if direction == "up":
            other = index - 1
        elif direction == "down":
            other = index + 1
        else:
            raise InputError(f"Unknown direction {direction!r}; expected 'up' or 'down'")

        if not 0 <= other < len(self._records):
            return
        self._records[index], self._records[other] = self._records[other], self._records[index]
        self._commit()
