"""Tiered, debounced persistence of the draw session."""

from __future__ import annotations

import asyncio
import json
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

import aiosqlite

from core import get_logger, StorageDefaults
from core.exceptions import StorageExhaustedError, StorageUnavailableError
from database.connection import SQLitePool
from database.models import SessionRecord
from services.metrics import STORAGE_EXHAUSTED, STORAGE_TIER_FAILURES
from services.session_schema import SchemaError, dump_session, load_session

logger = get_logger(__name__)


class StorageBackend(Protocol):
    """One storage tier; failures surface as ``StorageUnavailableError``."""

    name: str

    async def read(self) -> Optional[dict[str, Any]]:
        ...

    async def write(self, record: dict[str, Any]) -> None:
        ...


class SQLiteSnapshotBackend:
    """Primary tier: one row per event in ``session_snapshots``."""

    name = "sqlite"

    def __init__(self, pool: SQLitePool, event_key: str = StorageDefaults.EVENT_KEY) -> None:
        self.pool = pool
        self.event_key = event_key

    async def read(self) -> Optional[dict[str, Any]]:
        try:
            async with self.pool.connection() as conn:
                cursor = await conn.execute(
                    "SELECT payload FROM session_snapshots WHERE event_key = ?",
                    (self.event_key,),
                )
                row = await cursor.fetchone()
        except (aiosqlite.Error, sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, f"read failed: {e}") from e

        if not row:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise StorageUnavailableError(self.name, f"stored payload is not JSON: {e}") from e

    async def write(self, record: dict[str, Any]) -> None:
        payload = json.dumps(record, ensure_ascii=False)
        try:
            async with self.pool.connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO session_snapshots (event_key, schema_version, payload, updated_at)
                    VALUES (?, ?, ?, datetime('now'))
                    ON CONFLICT(event_key) DO UPDATE SET
                        schema_version=excluded.schema_version,
                        payload=excluded.payload,
                        updated_at=datetime('now')
                    """,
                    (self.event_key, record.get("schema_version", StorageDefaults.SCHEMA_VERSION), payload),
                )
                await conn.commit()
        except (aiosqlite.Error, sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, f"write failed: {e}") from e


class JsonFileBackend:
    """Secondary tier: a single JSON document replaced atomically.

    ``max_bytes`` caps the document size the way browser storage quotas do,
    so an oversized roster fails loudly instead of truncating.
    """

    name = "json_file"

    def __init__(self, path: str, max_bytes: Optional[int] = StorageDefaults.FALLBACK_MAX_BYTES) -> None:
        self.path = Path(path)
        self.max_bytes = max_bytes

    async def read(self) -> Optional[dict[str, Any]]:
        try:
            text = await asyncio.to_thread(self._read_text)
        except OSError as e:
            raise StorageUnavailableError(self.name, f"read failed: {e}") from e
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise StorageUnavailableError(self.name, f"stored file is not JSON: {e}") from e

    async def write(self, record: dict[str, Any]) -> None:
        data = json.dumps(record, ensure_ascii=False, indent=2).encode("utf-8")
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise StorageUnavailableError(
                self.name, f"quota exceeded ({len(data)} bytes > {self.max_bytes} bytes)"
            )
        try:
            await asyncio.to_thread(self._write_bytes, data)
        except OSError as e:
            raise StorageUnavailableError(self.name, f"write failed: {e}") from e

    def _read_text(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write_bytes(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f".{self.path.name}.tmp")
        with open(temp_path, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, self.path)


class PersistenceGateway:
    """Composes storage tiers in priority order."""

    def __init__(self, backends: Sequence[StorageBackend]) -> None:
        self.backends = list(backends)

    async def save(self, record: SessionRecord) -> str:
        """Write ``record`` to the first tier that accepts it.

        Returns:
            Name of the backend that stored the session

        Raises:
            StorageExhaustedError: If every tier failed
        """
        document = dump_session(record)
        failures: list[StorageUnavailableError] = []
        for backend in self.backends:
            try:
                await backend.write(document)
            except StorageUnavailableError as e:
                STORAGE_TIER_FAILURES.labels(backend=backend.name).inc()
                logger.warning(f"Storage tier '{backend.name}' rejected save: {e.reason}")
                failures.append(e)
                continue
            if failures:
                logger.info(f"Session saved to fallback tier '{backend.name}'")
            return backend.name

        STORAGE_EXHAUSTED.inc()
        raise StorageExhaustedError(failures)

    async def load(self) -> Optional[SessionRecord]:
        """Return the stored session, reading tiers in priority order.

        The first usable record wins unless a later tier holds one with a
        strictly newer ``saved_at``. That happens when primary writes failed
        for a while but primary reads still work.
        """
        chosen: Optional[tuple[str, Optional[datetime], SessionRecord]] = None
        for backend in self.backends:
            try:
                document = await backend.read()
            except StorageUnavailableError as e:
                logger.warning(f"Storage tier '{backend.name}' could not be read: {e.reason}")
                continue
            if document is None:
                continue
            try:
                record = load_session(document)
            except SchemaError as e:
                logger.warning(f"Ignoring unusable session in '{backend.name}': {e}")
                continue

            saved_at = _saved_at(document)
            if chosen is not None:
                if saved_at is None or chosen[1] is None or saved_at <= chosen[1]:
                    continue
                logger.warning(f"Tier '{backend.name}' holds a newer session than '{chosen[0]}'; using it")
            chosen = (backend.name, saved_at, record)

        if chosen is None:
            return None
        name, _, record = chosen
        logger.info(
            f"Loaded session from '{name}': "
            f"{len(record.participants)} participants, {len(record.gifts)} gifts, stage '{record.stage.value}'"
        )
        return record

    async def load_or_seed(self, seed: Callable[[], SessionRecord]) -> tuple[SessionRecord, bool]:
        """Load the stored session or build a fresh one.

        Returns:
            Tuple of (record, restored) where ``restored`` tells whether the
            record came from storage
        """
        record = await self.load()
        if record is not None:
            return record, True
        logger.info("No stored session found; seeding the default roster")
        return seed(), False


RecordSource = Callable[[], SessionRecord]
ErrorListener = Callable[[Optional[StorageExhaustedError]], None]


class DebouncedSaver:
    """Coalesces rapid state changes into a single write.

    Each :meth:`schedule` restarts the timer; the record is taken from
    ``source`` only when the timer fires, so the write after quiescence
    always carries the latest state.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        source: RecordSource,
        delay: float = StorageDefaults.SAVE_DEBOUNCE_MS / 1000,
        on_result: Optional[ErrorListener] = None,
    ) -> None:
        self.gateway = gateway
        self.source = source
        self.delay = delay
        self.on_result = on_result
        self.last_error: Optional[StorageExhaustedError] = None
        self.last_backend: Optional[str] = None
        self._timer: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def schedule(self, *_: Any) -> None:
        """Request a save; extra arguments are ignored so it can be a listener."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._delayed_save())

    async def _delayed_save(self) -> None:
        await asyncio.sleep(self.delay)
        # Past this point a newer schedule() must not cancel the write in progress
        if self._timer is asyncio.current_task():
            self._timer = None
        await self._write()

    async def flush(self) -> None:
        """Write a pending save immediately and wait for any write in flight."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            self._timer = None
            await self._write()
            return
        async with self._write_lock:
            pass

    async def save_now(self) -> None:
        """Cancel any pending timer and write the current state."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        await self._write()

    async def _write(self) -> None:
        async with self._write_lock:
            try:
                self.last_backend = await self.gateway.save(self.source())
            except StorageExhaustedError as e:
                logger.error(f"Session could not be saved: {e}")
                self.last_error = e
                self._report(e)
                return
            if self.last_error is not None:
                logger.info(f"Session saved again via '{self.last_backend}' after earlier failure")
            self.last_error = None
            self._report(None)

    def _report(self, error: Optional[StorageExhaustedError]) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(error)
        except Exception as e:
            logger.error(f"Storage result listener failed: {e}", exc_info=True)


def _saved_at(document: dict[str, Any]) -> Optional[datetime]:
    raw = document.get("saved_at")
    if not isinstance(raw, str):
        return None
    try:
        value = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
