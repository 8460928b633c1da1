"""API endpoints for Ingestor service."""

from dataclasses import dataclass


@dataclass
class Ingestor:
    PREFIX: str = "/v1"
    HEALTH: str = "/health"
    INIT: str = "/index/init"
    CHECK: str = "/index/check"
    SYNC_PHASE1: str = "/index/sync/phase1"
    SYNC_PHASE2: str = "/index/sync/phase2"
    SEARCH: str = "/search"
