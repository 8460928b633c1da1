from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INGEST_", extra="ignore")

    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8124)

    # bearer token -> tenant id
    AUTH_TOKENS: Dict[str, str] = Field(default_factory=dict)
    # accept "dev-token-<tenant>" without a table entry
    ALLOW_DEV_TOKENS: bool = Field(default=True)

    def to_dict_public(self) -> dict:
        data = self.model_dump(exclude={"AUTH_TOKENS"})
        data["AUTH_TOKENS"] = len(self.AUTH_TOKENS)
        return data


runtime = RuntimeConfig()
