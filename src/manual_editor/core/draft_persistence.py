"""Draft persistence for never-saved manuals.

Edits to a new manual are written to a single fixed-key slot after a quiet
period. Each new edit inside the window cancels the pending write, so a
burst of edits produces one write of the latest state.

Payload (JSON):
    {"$schema": "manual_draft_v1", "updatedAt": "<iso>", ...document fields}

A draft that cannot be parsed is discarded and treated as "no draft".
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

import structlog

from manual_editor.core.errors import CorruptDraftError, StructuralInvariantViolation
from manual_editor.core.models import ManualDocument

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

DRAFT_SCHEMA = "manual_draft_v1"
DRAFT_KEY = "manual-draft"
DEFAULT_DEBOUNCE_SECONDS = 1.0


# =============================================================================
# SCHEDULING
# =============================================================================


class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Deferred-task primitive: ``schedule(fn, delay) -> handle``."""

    def schedule(self, fn: Callable[[], None], delay: float) -> ScheduledHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop's ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def schedule(self, fn: Callable[[], None], delay: float) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, fn)


# =============================================================================
# STORES
# =============================================================================


class DraftStore(Protocol):
    """Key/value slot storage for serialized drafts."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, payload: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryDraftStore:
    """In-memory store, mainly for tests and embedding."""

    def __init__(self):
        self.slots: dict[str, str] = {}
        self.write_count = 0

    def read(self, key: str) -> str | None:
        return self.slots.get(key)

    def write(self, key: str, payload: str) -> None:
        self.slots[key] = payload
        self.write_count += 1

    def delete(self, key: str) -> None:
        self.slots.pop(key, None)


class FileDraftStore:
    """One JSON file per key under a state directory."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def _path(self, key: str) -> Path:
        return self.state_dir / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, payload: str) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# =============================================================================
# SERIALIZATION
# =============================================================================


@dataclass
class LoadedDraft:
    """A recovered draft and when it was last written."""

    document: ManualDocument
    updated_at: str


def _encode(snapshot: dict[str, Any], updated_at: str) -> str:
    payload: dict[str, Any] = {"$schema": DRAFT_SCHEMA}
    payload.update(snapshot)
    payload["updatedAt"] = updated_at
    return json.dumps(payload, ensure_ascii=False)


def serialize_draft(document: ManualDocument, updated_at: str | None = None) -> str:
    """Serialize a document snapshot into a draft payload."""
    return _encode(
        document.to_dict(), updated_at or datetime.now(timezone.utc).isoformat()
    )


def deserialize_draft(raw: str) -> LoadedDraft:
    """Parse a draft payload.

    Raises:
        CorruptDraftError: payload is not a valid draft
    """
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise CorruptDraftError("Draft payload is not an object")
        if data.get("$schema") != DRAFT_SCHEMA:
            raise CorruptDraftError(f"Unexpected draft schema: {data.get('$schema')!r}")
        document = ManualDocument.from_dict(data)
        updated_at = str(data["updatedAt"])
    except CorruptDraftError:
        raise
    except (
        json.JSONDecodeError,
        KeyError,
        ValueError,
        TypeError,
        AttributeError,
        StructuralInvariantViolation,
    ) as e:
        raise CorruptDraftError(str(e)) from e

    if document.id is not None:
        raise CorruptDraftError("Draft payload belongs to a saved manual")

    return LoadedDraft(document=document, updated_at=updated_at)


# =============================================================================
# MANAGER
# =============================================================================


class DraftPersistenceManager:
    """Debounced draft writes for a single editing session."""

    def __init__(
        self,
        store: DraftStore,
        scheduler: Scheduler,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        key: str = DRAFT_KEY,
        clock: Callable[[], datetime] | None = None,
        on_write: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.debounce_seconds = debounce_seconds
        self.key = key
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.on_write = on_write
        self._pending: ScheduledHandle | None = None
        self._generation = 0

    @staticmethod
    def applies_to(document: ManualDocument) -> bool:
        """Autosave only covers documents that were never saved remotely."""
        return document.id is None

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None

    def load(self) -> LoadedDraft | None:
        """Recover the persisted draft, if any.

        A corrupt payload is deleted and reported as no draft.
        """
        try:
            raw = self.store.read(self.key)
            if raw is None:
                return None
            draft = deserialize_draft(raw)
        except (CorruptDraftError, UnicodeDecodeError) as e:
            logger.warning("draft_corrupt_discarded", key=self.key, error=str(e))
            self.store.delete(self.key)
            return None

        logger.info(
            "draft_loaded",
            key=self.key,
            updated_at=draft.updated_at,
            steps=len(draft.document.steps),
        )
        return draft

    def schedule_write(self, document: ManualDocument) -> bool:
        """Schedule a write of the document, replacing any pending one.

        The snapshot is taken now, so later edits cannot leak into it.

        Returns:
            True if a write was scheduled, False if autosave does not apply
        """
        if not self.applies_to(document):
            return False

        self.cancel_pending()
        snapshot = document.to_dict()
        self._generation += 1
        generation = self._generation

        def _fire() -> None:
            self._write(snapshot, generation)

        self._pending = self.scheduler.schedule(_fire, self.debounce_seconds)
        return True

    def _write(self, snapshot: dict[str, Any], generation: int) -> None:
        if generation != self._generation:
            logger.debug("draft_write_stale", generation=generation)
            return
        self._pending = None

        updated_at = self._clock().isoformat()
        self.store.write(self.key, _encode(snapshot, updated_at))

        logger.debug("draft_written", key=self.key, updated_at=updated_at)
        if self.on_write is not None:
            self.on_write(updated_at)

    def cancel_pending(self) -> None:
        """Cancel the pending write; a late callback is ignored."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._generation += 1

    def flush(self, document: ManualDocument) -> bool:
        """Write the document immediately, dropping any pending write."""
        if not self.applies_to(document):
            return False
        self.cancel_pending()
        self._write(document.to_dict(), self._generation)
        return True

    def clear(self) -> None:
        """Cancel pending work and delete the persisted draft."""
        self.cancel_pending()
        self.store.delete(self.key)
        logger.info("draft_cleared", key=self.key)
