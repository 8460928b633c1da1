"""Persisted set of relative paths changed since the last successful sync."""

from datetime import datetime, timezone
from typing import List, Optional

from infra.logger import get_logger
from syncer.core.models.state import DirtyQueue
from syncer.state.store import StateStore

log = get_logger("syncer.state.dirty")


class DirtySet:

    def __init__(self, store: StateStore):
        self._store = store
        self._queue = store.load_dirty()

    def add(self, relative_path: str) -> None:
        if relative_path in self._queue.dirty_files:
            return
        self._queue.dirty_files.append(relative_path)
        self._store.save_dirty(self._queue)
        log.debug("dirty.add", path=relative_path, size=len(self._queue.dirty_files))

    def paths(self) -> List[str]:
        return sorted(self._queue.dirty_files)

    def __len__(self) -> int:
        return len(self._queue.dirty_files)

    def __contains__(self, relative_path: str) -> bool:
        return relative_path in self._queue.dirty_files

    @property
    def last_sync(self) -> Optional[str]:
        return self._queue.last_sync

    def clear(self) -> None:
        """Empty the set and stamp the sync time. Call only after a fully successful sync."""
        self._queue = DirtyQueue(last_sync=datetime.now(timezone.utc).isoformat(), dirty_files=[])
        self._store.save_dirty(self._queue)
        log.info("dirty.cleared", last_sync=self._queue.last_sync)
