"""Records the ingestor derives and stores for chunks."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

FALLBACK_SUMMARY = "Code chunk"


def is_zero_vector(vector: List[float]) -> bool:
    return all(v == 0 for v in vector)


@dataclass(frozen=True)
class DerivedResult:
    """Summary and embedding for one chunk hash. Tenant independent."""
    summary: str
    embedding: List[float]

    @classmethod
    def fallback(cls, dimensions: int) -> "DerivedResult":
        return cls(summary=FALLBACK_SUMMARY, embedding=[0.0] * dimensions)

    @property
    def is_degenerate(self) -> bool:
        """Placeholder summaries and zero vectors are fallbacks; they are never cached or indexed."""
        return self.summary == FALLBACK_SUMMARY or not self.embedding or is_zero_vector(self.embedding)

    def to_json(self) -> str:
        return json.dumps({"summary": self.summary, "embedding": self.embedding})

    @classmethod
    def from_json(cls, raw: str) -> "DerivedResult":
        data = json.loads(raw)
        return cls(summary=data["summary"], embedding=list(data["embedding"]))


@dataclass
class ChunkMeta:
    """Per-tenant chunk metadata as received from the client."""
    hash: str
    file_path: str
    type: str
    language: str
    lines: Tuple[int, int]
    name: Optional[str] = None
    char_count: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorRecord:
    id: str
    embedding: List[float]
    metadata: Dict[str, Any]


@dataclass
class VectorMatch:
    id: str
    score: float
    metadata: Dict[str, Any]
