"""
Persistence for outages.
Key-value backends (memory, JSON file) plus OutageRecordStore, which owns the two slots:
'activeOutage' (the in-progress outage, if any) and 'pastOutages' (completed, most-recent-first).
Absent keys are a normal empty state; only real I/O failures raise.
"""
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

from tracker.errors import MalformedRecordError, PersistenceReadError, PersistenceWriteError
from tracker.outage import Outage, dict_to_outage, outage_to_dict, prepend_unique

logger = logging.getLogger("outage_tracker.store")

ACTIVE_KEY = "activeOutage"
HISTORY_KEY = "pastOutages"


class KeyValueStore:
    """Async string key-value store. Subclasses implement the three operations."""

    async def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    All keys in one JSON object file. Blocking file I/O runs in a worker thread.
    Writes go to a temp file and are swapped in with os.replace.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Store file %s is not valid UTF-8 JSON; treating as empty", self.path)
            return {}
        except OSError as e:
            raise PersistenceReadError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            logger.warning("Store file %s does not hold an object; treating as empty", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write {self.path}: {e}") from e

    async def get_item(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def _update(self, key: str, value: Optional[str]) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
            except PersistenceReadError as e:
                raise PersistenceWriteError(str(e)) from e
            if value is None:
                if key not in data:
                    return
                data.pop(key)
            else:
                data[key] = value
            await asyncio.to_thread(self._write_all, data)

    async def set_item(self, key: str, value: str) -> None:
        await self._update(key, value)

    async def remove_item(self, key: str) -> None:
        await self._update(key, None)


class OutageRecordStore:
    """Schema and usage discipline for the active slot and the history list."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self.kv.get_item(key)
        except PersistenceReadError:
            raise
        except OSError as e:
            raise PersistenceReadError(f"Cannot read {key}: {e}") from e

    async def _set(self, key: str, value: str) -> None:
        try:
            await self.kv.set_item(key, value)
        except PersistenceWriteError:
            raise
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write {key}: {e}") from e

    async def load_active(self) -> Optional[Outage]:
        """Active slot, or None when absent. Raises MalformedRecordError on bad data."""
        raw = await self._get(ACTIVE_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Active slot is not valid JSON: {e}") from e
        outage = dict_to_outage(data)
        if not outage.in_progress:
            raise MalformedRecordError(f"Active slot holds a {outage.status.value} outage")
        return outage

    async def save_active(self, outage: Outage) -> None:
        await self._set(ACTIVE_KEY, json.dumps(outage_to_dict(outage)))

    async def clear_active(self) -> None:
        try:
            await self.kv.remove_item(ACTIVE_KEY)
        except PersistenceWriteError:
            raise
        except OSError as e:
            raise PersistenceWriteError(f"Cannot remove {ACTIVE_KEY}: {e}") from e

    async def load_history(self) -> list[Outage]:
        """Completed outages in stored order. Unreadable lists are empty; bad entries are skipped."""
        raw = await self._get(HISTORY_KEY)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("History is not valid JSON; starting with empty history")
            return []
        if not isinstance(items, list):
            logger.warning("History is not a list; starting with empty history")
            return []
        history: list[Outage] = []
        seen: set[str] = set()
        for item in items:
            try:
                outage = dict_to_outage(item)
            except MalformedRecordError as e:
                logger.warning("Skipping malformed history record: %s", e)
                continue
            if outage.in_progress:
                logger.warning("Skipping in-progress record %s found in history", outage.id)
                continue
            if outage.id in seen:
                continue
            seen.add(outage.id)
            history.append(outage)
        return history

    async def save_history(self, history: list[Outage]) -> None:
        await self._set(HISTORY_KEY, json.dumps([outage_to_dict(o) for o in history]))

    async def prepend_history(self, outage: Outage, history: Optional[list[Outage]] = None) -> list[Outage]:
        """
        Insert outage at the head, dropping any stored record with the same id.
        Uses the given history as the base, or loads it.
        """
        if history is None:
            history = await self.load_history()
        updated = prepend_unique(outage, history)
        await self.save_history(updated)
        return updated
