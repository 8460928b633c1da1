"""
Keeps the project's hash tree in step with the file system.

Full builds scan and hash every tracked file. Single-file updates and
deletions adjust the tree, persist it and record the path in the dirty set.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from infra.logger import get_logger
from infra.hashing import leaf_hash
from syncer.merkle.tree import MerkleTree
from syncer.scanner import FileScanner
from syncer.state.dirty_set import DirtySet
from syncer.state.store import StateStore

log = get_logger("syncer.merkle.builder")


@dataclass(frozen=True)
class TreeUpdate:
    relative_path: str
    root: str
    changed: bool


class MerkleTreeBuilder:

    def __init__(self, project_root: Path, store: StateStore, scanner: FileScanner, dirty: DirtySet):
        self.project_root = Path(project_root).resolve()
        self.store = store
        self.scanner = scanner
        self.dirty = dirty
        self._tree: Optional[MerkleTree] = None

    def build(self) -> MerkleTree:
        hashes: Dict[str, str] = {}
        for relative_path in self.scanner.scan():
            digest = self.hash_file(relative_path)
            if digest is not None:
                hashes[relative_path] = digest

        self._tree = MerkleTree.from_hashes(hashes)
        self.store.save_tree(self._tree.to_state())
        log.info("merkle.built", files=len(self._tree), root=self._tree.root)
        return self._tree

    def load(self) -> Optional[MerkleTree]:
        state = self.store.load_tree()
        if state is None:
            return None
        self._tree = MerkleTree.from_state(state)
        return self._tree

    def current(self) -> MerkleTree:
        """In-memory tree, else the persisted one, else a fresh build."""
        if self._tree is not None:
            return self._tree
        return self.load() or self.build()

    def hash_file(self, relative_path: str) -> Optional[str]:
        try:
            content = (self.project_root / relative_path).read_bytes()
        except OSError as e:
            log.warning("merkle.hash.read_failed", path=relative_path, error=str(e))
            return None
        return leaf_hash(relative_path, content)

    def relative_path(self, path: Union[str, Path]) -> str:
        path = Path(path)
        if path.is_absolute():
            path = path.resolve().relative_to(self.project_root)
        return path.as_posix()

    def update_file(self, path: Union[str, Path]) -> TreeUpdate:
        relative_path = self.relative_path(path)
        tree = self.current()

        if not (self.project_root / relative_path).is_file():
            return self.delete_file(relative_path)
        if not self.scanner.accepts(relative_path):
            return TreeUpdate(relative_path, tree.root, changed=False)

        digest = self.hash_file(relative_path)
        if digest is None or not tree.set_leaf(relative_path, digest):
            return TreeUpdate(relative_path, tree.root, changed=False)

        self.store.save_tree(tree.to_state())
        self.dirty.add(relative_path)
        log.info("merkle.updated", path=relative_path, root=tree.root)
        return TreeUpdate(relative_path, tree.root, changed=True)

    def delete_file(self, path: Union[str, Path]) -> TreeUpdate:
        relative_path = self.relative_path(path)
        tree = self.current()
        if not tree.remove_leaf(relative_path):
            return TreeUpdate(relative_path, tree.root, changed=False)

        self.store.save_tree(tree.to_state())
        self.dirty.add(relative_path)
        log.info("merkle.deleted", path=relative_path, root=tree.root)
        return TreeUpdate(relative_path, tree.root, changed=True)

    def refresh(self) -> MerkleTree:
        """
        Rebuild from disk and mark every path whose leaf differs from the
        persisted tree as dirty, so changes made while nothing was watching
        are not lost.
        """
        previous = self._tree or self.load()
        tree = self.build()
        if previous is None:
            return tree

        before = {leaf.relative_path: leaf.hash for leaf in previous.leaves}
        after = {leaf.relative_path: leaf.hash for leaf in tree.leaves}
        for relative_path in sorted(before.keys() | after.keys()):
            if before.get(relative_path) != after.get(relative_path):
                self.dirty.add(relative_path)
        return tree
