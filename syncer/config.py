from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra.config import Timeouts


class SyncerConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SYNC_", extra="ignore")

    BASE_URL: str = Field(default="http://localhost:8124")
    AUTH_TOKEN: str = Field(default="dev-token-local")
    PROJECT_ROOT: Path = Field(default=Path("."))
    STATE_DIR_NAME: str = Field(default=".sync")
    # None tracks every file the scanner does not skip
    EXTENSIONS: Optional[List[str]] = Field(default=None)

    MAX_CHUNK_SIZE: int = Field(default=8000)
    MIN_CHUNK_SIZE: int = Field(default=100)
    FALLBACK_LINE_SIZE: int = Field(default=50)
    FALLBACK_OVERLAP: int = Field(default=10)

    REQUEST_TIMEOUT: float = Field(default=Timeouts.LONG)
    WATCH_DEBOUNCE_MS: int = Field(default=300)
    LOG_LEVEL: str = Field(default="INFO")

    def to_dict_public(self) -> dict:
        return self.model_dump(exclude={"AUTH_TOKEN"}, mode="json")


syncer_config = SyncerConfig()
