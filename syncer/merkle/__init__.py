from syncer.merkle.builder import MerkleTreeBuilder, TreeUpdate
from syncer.merkle.tree import MerkleTree

__all__ = ["MerkleTree", "MerkleTreeBuilder", "TreeUpdate"]
