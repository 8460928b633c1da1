"""
Hashed chunk model.

A chunk is identified by the digest of its exact text. The text itself is
never stored on the chunk: anything that needs it later re-reads the span
through the chunk reference.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from infra.hashing import content_hash

MetadataValue = Union[str, int, float, bool]

MAX_EXTRA_KEYS = 16


class ChunkType(str, Enum):
    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    INTERFACE = "interface"
    TYPE = "type"
    ENUM = "enum"
    STRUCT = "struct"
    IMPL = "impl"
    TRAIT = "trait"
    BLOCK = "block"


class ChunkOrigin(str, Enum):
    SEMANTIC = "semantic"
    GAP_FILL = "gapFill"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ChunkReference:
    """Location of a chunk's text inside a project file (lines 1-based, chars end-exclusive)."""
    relative_path: str
    line_start: int
    line_end: int
    char_start: int
    char_end: int

    def __post_init__(self) -> None:
        if self.line_start < 1 or self.line_end < self.line_start:
            raise ValueError(f"Invalid line range {self.line_start}-{self.line_end}")
        if self.char_start < 0 or self.char_end < self.char_start:
            raise ValueError(f"Invalid char range {self.char_start}-{self.char_end}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relativePath": self.relative_path,
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
            "charStart": self.char_start,
            "charEnd": self.char_end,
        }


@dataclass(frozen=True)
class ChunkMetadata:
    origin: ChunkOrigin = ChunkOrigin.SEMANTIC
    parent: Optional[str] = None
    parameters: Tuple[str, ...] = ()
    return_type: Optional[str] = None
    is_async: bool = False
    exported: bool = False
    extra: Mapping[str, MetadataValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.extra) > MAX_EXTRA_KEYS:
            raise ValueError(f"Chunk metadata allows at most {MAX_EXTRA_KEYS} extra keys")
        for key, value in self.extra.items():
            if not isinstance(value, (str, int, float, bool)):
                raise ValueError(f"Metadata value for {key!r} must be a scalar, got {type(value).__name__}")
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> Dict[str, Any]:
        """Wire form. Only populated attributes are emitted."""
        data: Dict[str, Any] = dict(self.extra)
        if self.parent:
            data["parent"] = self.parent
        if self.parameters:
            data["parameters"] = list(self.parameters)
        if self.return_type:
            data["returnType"] = self.return_type
        if self.is_async:
            data["async"] = True
        if self.exported:
            data["exported"] = True
        if self.origin is ChunkOrigin.GAP_FILL:
            data["gapFill"] = True
        elif self.origin is ChunkOrigin.FALLBACK:
            data["fallback"] = True
        return data


@dataclass(frozen=True)
class HashedChunk:
    content_hash: str
    type: ChunkType
    name: Optional[str]
    language: str
    reference: ChunkReference
    metadata: ChunkMetadata
    char_count: int

    @classmethod
    def from_text(
        cls,
        text: str,
        chunk_type: ChunkType,
        name: Optional[str],
        language: str,
        reference: ChunkReference,
        metadata: Optional[ChunkMetadata] = None,
    ) -> "HashedChunk":
        """Hashes the text and keeps only its digest and length."""
        return cls(
            content_hash=content_hash(text),
            type=chunk_type,
            name=name,
            language=language,
            reference=reference,
            metadata=metadata or ChunkMetadata(),
            char_count=len(text),
        )

    def to_sync_payload(self) -> Dict[str, Any]:
        return {
            "hash": self.content_hash,
            "type": self.type.value,
            "name": self.name,
            "language": self.language,
            "lines": [self.reference.line_start, self.reference.line_end],
            "charCount": self.char_count,
            "filePath": self.reference.relative_path,
            "metadata": self.metadata.to_dict(),
        }
