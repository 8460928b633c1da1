from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DAY = 24 * 60 * 60


class CacheConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INGEST_", extra="ignore")

    DEDUP_TTL_SECONDS: int = Field(default=30 * DAY)
    DERIVED_TTL_SECONDS: int = Field(default=90 * DAY)
    VECTOR_BATCH_SIZE: int = Field(default=100)
    DERIVE_BATCH_SIZE: int = Field(default=50)


cache = CacheConfig()
