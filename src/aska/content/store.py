"""JSON-backed content store.

Persists sources, prompts, and every generated-item collection in a single
JSON file, saved atomically after every write.

Every mutation holds a re-entrant lock (threads in one process) and an OS
file lock on a sidecar ``.lock`` file (separate processes). Under both it
reloads the file, applies the change, and saves, so concurrent writers never
overwrite each other's rows or ids. Reads reload only when the file changed
on disk.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import portalocker
from pydantic import BaseModel, Field

from aska.content.models import Prompt, SourceRecord, SourceStatus
from aska.errors import StoreError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".aska-store.json"
LOCK_TIMEOUT_SECONDS = 10

WISDOM_TABLE = "collection_hockey_wisdom"
GREETINGS_TABLE = "collection_greetings"
MOTIVATIONAL_TABLE = "collection_hockey_motivate"
FACTS_TABLE = "collection_hockey_facts"
MULTIPLE_CHOICE_TABLE = "trivia_multiple_choice"
TRUE_FALSE_TABLE = "trivia_true_false"
WHO_AM_I_TABLE = "trivia_who_am_i"

ITEM_TABLES = (
    WISDOM_TABLE,
    GREETINGS_TABLE,
    MOTIVATIONAL_TABLE,
    FACTS_TABLE,
    MULTIPLE_CHOICE_TABLE,
    TRUE_FALSE_TABLE,
    WHO_AM_I_TABLE,
)


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    sources: list[SourceRecord] = Field(default_factory=list)
    prompts: list[Prompt] = Field(default_factory=list)
    items: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    next_ids: dict[str, int] = Field(default_factory=dict)


class ContentStore:
    """CRUD store for sources, prompts, and generated items."""

    def __init__(self, output_dir: Path) -> None:
        self._path = output_dir / STORE_FILENAME
        self._lock_path = output_dir / f"{STORE_FILENAME}.lock"
        self._lock = threading.RLock()
        self._disk_state: tuple[int, int, int] | None = None
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _stat(self) -> tuple[int, int, int] | None:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        return st.st_ino, st.st_mtime_ns, st.st_size

    def _load(self) -> _StoreData:
        self._disk_state = self._stat()
        if self._disk_state is None:
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _refresh(self) -> None:
        """Reload if another writer replaced the file since the last load."""
        if self._stat() != self._disk_state:
            self._data = self._load()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".aska-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(self._data.model_dump_json(indent=2))
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._disk_state = self._stat()

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock = portalocker.Lock(str(self._lock_path), mode="a", timeout=LOCK_TIMEOUT_SECONDS)
            lock.acquire()
        except portalocker.exceptions.LockException as exc:
            logger.warning("Lock timeout on content store %s", self._path)
            raise StoreError(f"Content store is locked by another process: {exc}") from exc
        except OSError as exc:
            raise StoreError(f"Failed to lock content store: {exc}") from exc
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def _write(self) -> Iterator[None]:
        """Run one mutation against fresh data and save it.

        On any failure the in-memory data is restored and nothing is written.
        """
        with self._lock, self._file_lock():
            self._data = self._load()
            snapshot = self._data.model_copy(deep=True)
            try:
                yield
                self._save()
            except OSError as exc:
                self._data = snapshot
                raise StoreError(f"Failed to write content store: {exc}") from exc
            except BaseException:
                self._data = snapshot
                raise

    def _next_id(self, collection: str) -> int:
        next_id = self._data.next_ids.get(collection, 1)
        self._data.next_ids[collection] = next_id + 1
        return next_id

    def _find_source(self, source_id: int) -> SourceRecord | None:
        for record in self._data.sources:
            if record.id == source_id:
                return record
        return None

    def _require_source(self, source_id: int) -> SourceRecord:
        record = self._find_source(source_id)
        if record is None:
            raise StoreError(f"Source {source_id} not found")
        return record

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in ITEM_TABLES:
            raise StoreError(f"Unknown table: {table}")

    # ── Sources ──────────────────────────────────────────────────

    def insert_source(self, record: SourceRecord) -> SourceRecord:
        """Insert a new source, assigning its id and timestamps."""
        with self._write():
            now = datetime.now(tz=UTC)
            stored = record.model_copy(
                update={"id": self._next_id("sources"), "created_at": now, "updated_at": now}
            )
            self._data.sources.append(stored)
        return stored.model_copy(deep=True)

    def get_source(self, source_id: int) -> SourceRecord | None:
        """Return a copy of the source, or None if not found."""
        with self._lock:
            self._refresh()
            record = self._find_source(source_id)
            return record.model_copy(deep=True) if record is not None else None

    def list_sources(
        self,
        status: SourceStatus | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[SourceRecord]:
        """Return sources ordered by id, optionally filtered by status.

        ``offset`` and ``limit`` select one page of the filtered result.
        """
        with self._lock:
            self._refresh()
            results = sorted(self._data.sources, key=lambda r: r.id)
            if status is not None:
                results = [r for r in results if r.content_status == status]
            end = None if limit is None else offset + limit
            return [r.model_copy(deep=True) for r in results[offset:end]]

    def update_used_for(self, source_id: int, used_for: list[str]) -> None:
        """Replace a source's ``used_for`` list.

        Raises StoreError if the source does not exist or the write fails.
        """
        with self._write():
            record = self._require_source(source_id)
            record.used_for = list(used_for)
            record.updated_at = datetime.now(tz=UTC)

    def append_used_for(self, source_id: int, key: str) -> bool:
        """Add ``key`` to a source's ``used_for`` list unless already present.

        Membership is case-insensitive. The check and the append happen in one
        locked write, so concurrent callers adding different keys all land.

        Returns:
            True if the key was added, False if it was already there.

        Raises:
            StoreError: If the source does not exist or the write fails.
        """
        with self._lock:
            self._refresh()
            if self._has_usage_key(self._require_source(source_id), key):
                return False
            with self._write():
                record = self._require_source(source_id)
                added = not self._has_usage_key(record, key)
                if added:
                    record.used_for = [*record.used_for, key]
                    record.updated_at = datetime.now(tz=UTC)
        return added

    @staticmethod
    def _has_usage_key(record: SourceRecord, key: str) -> bool:
        return key.strip().lower() in {str(v).strip().lower() for v in record.used_for}

    def update_source_status(self, source_id: int, status: SourceStatus) -> None:
        """Set a source's lifecycle status."""
        with self._write():
            record = self._require_source(source_id)
            record.content_status = status
            record.updated_at = datetime.now(tz=UTC)

    # ── Generated items ──────────────────────────────────────────

    def insert_items(self, table: str, records: list[BaseModel]) -> list[dict[str, Any]]:
        """Insert a batch of records into ``table`` in a single write.

        Either every record is stored or none is.

        Raises StoreError on an unknown table, an empty batch, or a failed write.
        """
        self._check_table(table)
        if not records:
            raise StoreError(f"Refusing to insert an empty batch into {table}")

        with self._write():
            now = datetime.now(tz=UTC).isoformat()
            rows: list[dict[str, Any]] = []
            for record in records:
                row = {"id": self._next_id(table), **record.model_dump(mode="json"), "created_at": now}
                rows.append(row)
            self._data.items.setdefault(table, []).extend(rows)
        return [dict(r) for r in rows]

    def list_items(self, table: str, source_id: int | None = None) -> list[dict[str, Any]]:
        """Return rows from ``table``, optionally only those for one source."""
        self._check_table(table)
        with self._lock:
            self._refresh()
            rows = self._data.items.get(table, [])
            if source_id is not None:
                rows = [r for r in rows if r.get("source_content_id") == source_id]
            return [dict(r) for r in rows]

    def count_items(self, table: str, source_id: int) -> int:
        """Count rows in ``table`` that reference ``source_id``."""
        return len(self.list_items(table, source_id=source_id))

    # ── Prompts ──────────────────────────────────────────────────

    def upsert_prompt(self, prompt: Prompt) -> Prompt:
        """Insert a prompt, or replace the one with the same id."""
        with self._write():
            now = datetime.now(tz=UTC)
            if prompt.id:
                self._data.prompts = [p for p in self._data.prompts if p.id != prompt.id]
                stored = prompt.model_copy(update={"updated_at": now})
            else:
                stored = prompt.model_copy(
                    update={"id": self._next_id("prompts"), "created_at": now, "updated_at": now}
                )
            self._data.prompts.append(stored)
        return stored.model_copy(deep=True)

    def get_active_prompt(self, prompt_type: str) -> Prompt | None:
        """Return the newest active prompt of ``prompt_type``, or None."""
        with self._lock:
            self._refresh()
            candidates = [
                p for p in self._data.prompts if p.prompt_type == prompt_type and p.is_active
            ]
            if not candidates:
                return None
            return max(candidates, key=lambda p: p.id).model_copy(deep=True)

    def list_prompts(self) -> list[Prompt]:
        """Return every stored prompt ordered by id."""
        with self._lock:
            self._refresh()
            return [p.model_copy(deep=True) for p in sorted(self._data.prompts, key=lambda p: p.id)]
