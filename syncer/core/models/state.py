"""Persisted client state: tree snapshot and dirty queue."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class MerkleLeaf:
    relative_path: str
    hash: str

    def to_dict(self) -> Dict[str, str]:
        return {"relativePath": self.relative_path, "hash": self.hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MerkleLeaf":
        return cls(relative_path=data["relativePath"], hash=data["hash"])


@dataclass
class TreeState:
    root: str
    leaves: List[MerkleLeaf]
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "leaves": [leaf.to_dict() for leaf in self.leaves],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreeState":
        return cls(
            root=data.get("root", ""),
            leaves=[MerkleLeaf.from_dict(item) for item in data.get("leaves", [])],
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class DirtyQueue:
    last_sync: Optional[str] = None
    dirty_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"lastSync": self.last_sync, "dirtyFiles": list(self.dirty_files)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirtyQueue":
        return cls(
            last_sync=data.get("lastSync"),
            dirty_files=list(data.get("dirtyFiles", [])),
        )
