from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INGEST_", extra="ignore")

    STORAGE_TYPE: str = Field(default="memory")

    # PostgreSQL connection
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)
    POSTGRES_DB: str = Field(default="chunksync")
    POSTGRES_USER: str = Field(default="chunksync")
    POSTGRES_PASSWORD: str = Field(default="chunksync")
    POSTGRES_OPERATION_TIMEOUT: float = Field(default=30.0)

    # Vector storage
    PGVECTOR_DIMENSIONS: int = Field(default=1024)

    def to_dict_public(self) -> dict:
        """Config without secret fields."""
        return self.model_dump(exclude={"POSTGRES_PASSWORD"})


storage = StorageConfig()
