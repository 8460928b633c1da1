"""
Binary hash tree over a project's files.

Leaves are ordered by relative path (code-point order). Each parent is
pair_hash(left, right); a node without a sibling is promoted to the next
level unchanged. An empty tree has the empty string as its root.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from infra.hashing import pair_hash
from syncer.core.models.state import MerkleLeaf, TreeState


class MerkleTree:

    def __init__(self, leaves: Iterable[MerkleLeaf] = ()):
        self._leaves: List[MerkleLeaf] = sorted(leaves, key=lambda leaf: leaf.relative_path)
        self._index: Dict[str, int] = {}
        for i, leaf in enumerate(self._leaves):
            if leaf.relative_path in self._index:
                raise ValueError(f"Duplicate leaf path: {leaf.relative_path}")
            self._index[leaf.relative_path] = i
        self._levels: List[List[str]] = self._build_levels()

    @classmethod
    def from_hashes(cls, hashes: Dict[str, str]) -> "MerkleTree":
        return cls(MerkleLeaf(path, digest) for path, digest in hashes.items())

    @classmethod
    def from_state(cls, state: TreeState) -> "MerkleTree":
        return cls(state.leaves)

    def to_state(self) -> TreeState:
        return TreeState(
            root=self.root,
            leaves=list(self._leaves),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @property
    def root(self) -> str:
        if not self._levels:
            return ""
        return self._levels[-1][0]

    @property
    def leaves(self) -> List[MerkleLeaf]:
        return list(self._leaves)

    @property
    def depth(self) -> int:
        return len(self._levels)

    def level(self, depth: int) -> List[str]:
        """Hashes at a level; 0 is the leaf level."""
        return list(self._levels[depth])

    def leaf_hash(self, relative_path: str) -> Optional[str]:
        i = self._index.get(relative_path)
        return None if i is None else self._leaves[i].hash

    def __len__(self) -> int:
        return len(self._leaves)

    def __contains__(self, relative_path: str) -> bool:
        return relative_path in self._index

    def set_leaf(self, relative_path: str, digest: str) -> bool:
        """
        Insert or update a leaf.

        Returns False when the leaf already holds this digest. Updating an
        existing leaf only recomputes its path to the root; inserting a new
        path reshapes the tree and rebuilds it.
        """
        i = self._index.get(relative_path)
        if i is not None:
            if self._leaves[i].hash == digest:
                return False
            self._leaves[i] = MerkleLeaf(relative_path, digest)
            self._levels[0][i] = digest
            self._recompute_path(i)
            return True

        self._leaves.append(MerkleLeaf(relative_path, digest))
        self._leaves.sort(key=lambda leaf: leaf.relative_path)
        self._reindex()
        return True

    def remove_leaf(self, relative_path: str) -> bool:
        i = self._index.get(relative_path)
        if i is None:
            return False
        del self._leaves[i]
        self._reindex()
        return True

    def _reindex(self) -> None:
        self._index = {leaf.relative_path: i for i, leaf in enumerate(self._leaves)}
        self._levels = self._build_levels()

    def _build_levels(self) -> List[List[str]]:
        if not self._leaves:
            return []
        level = [leaf.hash for leaf in self._leaves]
        levels = [level]
        while len(level) > 1:
            level = [
                pair_hash(level[i], level[i + 1]) if i + 1 < len(level) else level[i]
                for i in range(0, len(level), 2)
            ]
            levels.append(level)
        return levels

    def _recompute_path(self, index: int) -> None:
        for depth in range(1, len(self._levels)):
            index //= 2
            below = self._levels[depth - 1]
            left = 2 * index
            if left + 1 < len(below):
                self._levels[depth][index] = pair_hash(below[left], below[left + 1])
            else:
                self._levels[depth][index] = below[left]
