import pytest
from inotify_simple import Event, flags

from syncer.merkle import MerkleTreeBuilder
from syncer.scanner import FileScanner
from syncer.state import DirtySet, StateStore
from syncer.watcher import CHANGED, DELETED, FileWatcher, classify


@pytest.fixture
def builder(tmp_path):
    (tmp_path / "a.py").write_text("x = 1\n")
    (tmp_path / "b.py").write_text("y = 2\n")
    store = StateStore(tmp_path / ".sync")
    builder = MerkleTreeBuilder(tmp_path, store, FileScanner(tmp_path, ".sync"), DirtySet(store))
    builder.build()
    return builder


@pytest.mark.unit
class TestClassify:

    @pytest.mark.parametrize("mask,expected", [
        (flags.CLOSE_WRITE, CHANGED),
        (flags.CREATE, CHANGED),
        (flags.MOVED_TO, CHANGED),
        (flags.DELETE, DELETED),
        (flags.MOVED_FROM, DELETED),
        (flags.ACCESS, None),
    ])
    def test_classify(self, mask, expected):
        assert classify(mask) == expected


@pytest.mark.unit
class TestFileWatcher:

    @pytest.mark.asyncio
    async def test_flush_applies_batch_and_notifies(self, builder):
        batches = []

        async def on_batch(updates):
            batches.append(updates)

        watcher = FileWatcher(builder, debounce_ms=10, on_batch=on_batch)
        root = builder.project_root
        (root / "a.py").write_text("x = 10\n")
        (root / "b.py").unlink()
        (root / "c.py").write_text("z = 3\n")

        watcher.record(root / "a.py", CHANGED)
        watcher.record(root / "b.py", DELETED)
        watcher.record(root / "c.py", CHANGED)
        updates = await watcher.flush()

        assert [u.relative_path for u in updates] == ["a.py", "b.py", "c.py"]
        assert batches == [updates]
        assert builder.dirty.paths() == ["a.py", "b.py", "c.py"]
        assert "b.py" not in builder.current()
        assert updates[-1].root == builder.current().root

    @pytest.mark.asyncio
    async def test_repeated_events_collapse(self, builder):
        watcher = FileWatcher(builder)
        root = builder.project_root
        (root / "a.py").write_text("x = 11\n")
        for _ in range(5):
            watcher.record(root / "a.py", CHANGED)

        updates = await watcher.flush()
        assert len(updates) == 1
        assert await watcher.flush() == []

    @pytest.mark.asyncio
    async def test_unchanged_content_is_not_reported(self, builder):
        batches = []

        async def on_batch(updates):
            batches.append(updates)

        watcher = FileWatcher(builder, on_batch=on_batch)
        watcher.record(builder.project_root / "a.py", CHANGED)
        assert await watcher.flush() == []
        assert batches == []

    def test_collect_ignores_skipped_paths(self, builder):
        watcher = FileWatcher(builder)
        root = builder.project_root
        (root / "node_modules").mkdir()
        watcher._dirs = {1: root, 2: root / "node_modules"}

        watcher._collect(Event(wd=1, mask=flags.CLOSE_WRITE, cookie=0, name="a.py"))
        watcher._collect(Event(wd=2, mask=flags.CLOSE_WRITE, cookie=0, name="dep.js"))
        watcher._collect(Event(wd=9, mask=flags.CLOSE_WRITE, cookie=0, name="unknown.py"))

        assert watcher._pending == {"a.py": CHANGED}
