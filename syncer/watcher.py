"""
File watcher on inotify (inotify-simple).

Collects events per path, waits for a quiet period and then applies the
batch to the hash tree: existing files are re-hashed, vanished ones removed.
Every applied change lands in the dirty set through the tree builder.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import inotify_simple
from inotify_simple import flags

from infra.logger import get_logger
from syncer.merkle import MerkleTreeBuilder, TreeUpdate

log = get_logger("syncer.watcher")

WATCH_MASK = (
    flags.CREATE
    | flags.DELETE
    | flags.CLOSE_WRITE
    | flags.MOVED_FROM
    | flags.MOVED_TO
    | flags.DELETE_SELF
)

CHANGED = "changed"
DELETED = "deleted"


def classify(mask: int) -> Optional[str]:
    if mask & (flags.DELETE | flags.MOVED_FROM):
        return DELETED
    if mask & (flags.CREATE | flags.CLOSE_WRITE | flags.MOVED_TO):
        return CHANGED
    return None


class FileWatcher:

    def __init__(
        self,
        builder: MerkleTreeBuilder,
        debounce_ms: int = 300,
        on_batch: Optional[Callable[[List[TreeUpdate]], Awaitable[None]]] = None,
    ) -> None:
        self.builder = builder
        self.project_root = builder.project_root
        self.debounce_ms = debounce_ms
        self.on_batch = on_batch
        self._inotify: Optional[inotify_simple.INotify] = None
        self._dirs: Dict[int, Path] = {}
        self._pending: Dict[str, str] = {}
        self._running = False

    async def run(self) -> None:
        """Watch until stop() is called or the task is cancelled."""
        self._inotify = inotify_simple.INotify()
        self._running = True
        self._watch_tree(self.project_root)
        log.info("watcher.started", root=str(self.project_root), dirs=len(self._dirs))

        try:
            while self._running:
                events = await asyncio.to_thread(self._inotify.read, self.debounce_ms)
                if events:
                    for event in events:
                        self._collect(event)
                    continue
                # quiet period reached
                if self._pending:
                    await self.flush()
        finally:
            self._inotify.close()
            self._inotify = None
            log.info("watcher.stopped")

    def stop(self) -> None:
        self._running = False

    def record(self, path: Path, kind: str) -> None:
        relative_path = path.relative_to(self.project_root).as_posix()
        if kind == DELETED or self.builder.scanner.accepts(relative_path):
            self._pending[relative_path] = kind

    async def flush(self) -> List[TreeUpdate]:
        pending, self._pending = self._pending, {}
        updates: List[TreeUpdate] = []
        for relative_path, kind in sorted(pending.items()):
            if kind == DELETED:
                update = self.builder.delete_file(relative_path)
            else:
                update = self.builder.update_file(relative_path)
            if update.changed:
                updates.append(update)

        log.info("watcher.flush", events=len(pending), changed=len(updates))
        if updates and self.on_batch is not None:
            await self.on_batch(updates)
        return updates

    def _collect(self, event) -> None:
        directory = self._dirs.get(event.wd)
        if directory is None:
            return
        if event.mask & flags.IGNORED:
            self._dirs.pop(event.wd, None)
            return

        path = directory / event.name
        if event.mask & flags.ISDIR:
            if event.mask & (flags.CREATE | flags.MOVED_TO) and not self.builder.scanner.checker.should_ignore(path, is_dir=True):
                self._watch_tree(path)
                for child in path.rglob("*"):
                    if child.is_file():
                        self.record(child, CHANGED)
            return

        kind = classify(event.mask)
        if kind is not None and event.name:
            self.record(path, kind)

    def _watch_tree(self, root: Path) -> None:
        checker = self.builder.scanner.checker
        stack = [root]
        while stack:
            directory = stack.pop()
            try:
                wd = self._inotify.add_watch(directory, WATCH_MASK)
            except OSError as e:
                log.warning("watcher.add_watch.failed", dir=str(directory), error=str(e))
                continue
            self._dirs[wd] = directory
            checker.load_spec_for_dir(directory)
            for child in directory.iterdir():
                if child.is_dir() and not child.is_symlink() and not checker.should_ignore(child, is_dir=True):
                    stack.append(child)
