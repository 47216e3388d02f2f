"""
Local Storage Implementations

DESIGN DECISION: The desktop app keeps everything on the user's machine:
1. A directory of small files acts as the durable key-value store
   (the equivalent of the platform preferences store)
2. The audit trail is a JSON-lines file the debug log view can read
3. Subscriptions come from the persistence layer; the in-memory store
   here is what tests and headless runs hand to the core

TRADEOFFS:
- No locking across processes (one app instance owns the data dir)
- Audit log is never rotated
"""

import base64
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Optional
from uuid import UUID

import structlog

from subscription_manager.models.audit import AuditEvent
from subscription_manager.models.subscription import Subscription
from subscription_manager.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
    SubscriptionStoreInterface,
)


logger = structlog.get_logger(__name__)

# Keys matching this are used as file names verbatim; any other key is
# stored as "~" plus its urlsafe base64, which never matches it.
_PLAIN_KEY = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


class FileKeyValueStore(KeyValueStoreInterface):
    """
    One file per key under a directory.

    Writes go to a temporary file first and are moved into place,
    so a crash never leaves a half-written blob behind.
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        if not key:
            raise StorageError("Key must not be empty")
        if _PLAIN_KEY.fullmatch(key):
            return self._directory / key
        encoded = base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii").rstrip("=")
        return self._directory / f"~{encoded}"

    async def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    async def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as tmp:
                    tmp.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Process-local key-value store. Contents are lost on exit."""

    def __init__(self):
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class InMemorySubscriptionStore(SubscriptionStoreInterface):
    """Read-only subscription source backed by a list."""

    def __init__(self, subscriptions: Iterable[Subscription] = ()):
        self._subscriptions = {s.id: s for s in subscriptions}

    async def list_subscriptions(
        self,
        active_only: bool = True,
    ) -> list[Subscription]:
        subscriptions = [
            s for s in self._subscriptions.values()
            if s.is_active or not active_only
        ]
        return sorted(subscriptions, key=lambda s: s.service_name.lower())

    async def get_subscription(self, subscription_id: UUID) -> Optional[Subscription]:
        return self._subscriptions.get(subscription_id)


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.

    Lines that fail to parse are skipped when reading so one bad write
    never hides the rest of the history.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open("r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate(json.loads(line)))
                except ValueError as e:
                    logger.warning(
                        "audit_line_unreadable",
                        path=str(self._path),
                        line=line_number,
                        error=str(e),
                    )
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        events.reverse()
        return events[:limit]
