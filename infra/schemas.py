"""
Wire models of the sync protocol, shared by the client and the ingestor.

JSON uses camelCase keys; Python code uses the snake_case attribute names.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")
MAX_METADATA_KEYS = 32


def validate_scope_id(value: str, what: str = "id") -> str:
    """Tenant and project ids are joined with '_' into record ids, so they may not contain it."""
    if not value or not value.strip():
        raise ValueError(f"{what} must not be empty")
    if "_" in value:
        raise ValueError(f"{what} must not contain '_'")
    return value


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ChunkFields(WireModel):
    hash: str
    type: str
    name: Optional[str] = None
    language: str
    lines: Tuple[int, int]
    file_path: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("hash")
    @classmethod
    def _check_hash(cls, value: str) -> str:
        if not HASH_PATTERN.match(value):
            raise ValueError("hash must be 64 lowercase hex characters")
        return value

    @field_validator("file_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value:
            raise ValueError("filePath must not be empty")
        return value

    @field_validator("metadata")
    @classmethod
    def _check_metadata(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if len(value) > MAX_METADATA_KEYS:
            raise ValueError(f"metadata allows at most {MAX_METADATA_KEYS} keys")
        return value

    @model_validator(mode="after")
    def _check_lines(self):
        start, end = self.lines
        if start < 1 or end < start:
            raise ValueError(f"invalid line range {start}-{end}")
        return self


class ChunkDescriptor(ChunkFields):
    """Phase 1 chunk: everything but the content."""
    char_count: int = Field(ge=0)


class ContentChunk(ChunkFields):
    """Full chunk with content, sent on registration and in phase 2."""
    content: str


class ScopedRequest(WireModel):
    project_id: str

    @field_validator("project_id")
    @classmethod
    def _check_project(cls, value: str) -> str:
        return validate_scope_id(value, "projectId")


class RegisterRequest(ScopedRequest):
    merkle_root: str
    chunks: List[ContentChunk] = Field(default_factory=list)


class RegisterResponse(WireModel):
    status: SyncStatus
    chunks_stored: int
    chunks_skipped: int
    derived_processed: int = 0
    cache_hits: int = 0
    errors: List[str] = Field(default_factory=list)


class CheckRequest(ScopedRequest):
    merkle_root: str


class CheckResponse(WireModel):
    changed: bool
    remote_root: Optional[str] = None


class Phase1Request(ScopedRequest):
    merkle_root: str
    chunks: List[ChunkDescriptor] = Field(default_factory=list)


class Phase1Response(WireModel):
    needed: List[str] = Field(default_factory=list)
    cached: List[str] = Field(default_factory=list)


class Phase2Request(ScopedRequest):
    merkle_root: str
    chunks: List[ContentChunk] = Field(default_factory=list)
    removed_paths: List[str] = Field(default_factory=list)


class Phase2Response(WireModel):
    status: SyncStatus
    received: List[str] = Field(default_factory=list)
    derived_processed: int = 0
    cache_hits: int = 0
    errors: List[str] = Field(default_factory=list)
    merkle_root: Optional[str] = None


class SearchRequest(ScopedRequest):
    query: str = Field(min_length=1)
    top_k: int = Field(default=10, ge=1, le=100)


class SearchHit(WireModel):
    id: str
    hash: str
    score: float
    summary: str
    file_path: str
    name: Optional[str] = None
    type: str
    language: str
    lines: Tuple[int, int]


class SearchResponse(WireModel):
    results: List[SearchHit] = Field(default_factory=list)
    warning: Optional[str] = None


class HealthResponse(WireModel):
    status: str
    storage: Dict[str, Any] = Field(default_factory=dict)
