from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra.config import Timeouts


class DerivationConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INGEST_", extra="ignore")

    # None disables the remote service: every chunk gets the fallback result
    AI_URL: str | None = Field(default=None)
    AI_API_KEY: str = Field(default="sk-dummy")
    SUMMARY_MODEL: str = Field(default="default-model")
    EMBEDDING_MODEL: str = Field(default="embed-model")
    EMBEDDING_DIMENSIONS: int = Field(default=1024)
    EMBEDDING_BATCH_SIZE: int = Field(default=100)

    DERIVE_TIMEOUT: float = Field(default=Timeouts.DERIVE)
    QUERY_TIMEOUT: float = Field(default=Timeouts.QUERY)
    QUERY_RETRIES: int = Field(default=2)
    QUERY_RETRY_WAIT: float = Field(default=0.5)

    def to_dict_public(self) -> dict:
        return self.model_dump(exclude={"AI_API_KEY"})


derivation = DerivationConfig()
