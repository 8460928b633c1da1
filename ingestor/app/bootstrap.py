"""Wires storage, derivation and services into an IngestorAPI."""

from dataclasses import dataclass
from typing import Optional

from ingestor.adapters.derivation import OpenAICompatibleDerivation, UnavailableDerivation
from ingestor.adapters.storage_factory import StorageBundle
from ingestor.api.auth import TokenAuthenticator
from ingestor.api.server import IngestorAPI
from ingestor.config.cache import CacheConfig
from ingestor.config.derivation import DerivationConfig
from ingestor.config.runtime import RuntimeConfig
from ingestor.core.ports.derivation import DerivationService
from ingestor.services.background import BackgroundTasks
from ingestor.services.cache import TieredCache
from ingestor.services.derivation import DerivationRunner
from ingestor.services.indexing import ContentIndexer
from ingestor.services.sync import SyncService


@dataclass
class IngestorApp:
    api: IngestorAPI
    sync_service: SyncService
    storage: StorageBundle
    derivation: DerivationService
    background: BackgroundTasks

    async def close(self) -> None:
        await self.background.drain()
        await self.derivation.close()
        await self.storage.close()


def create_derivation(config: DerivationConfig) -> DerivationService:
    if not config.AI_URL:
        return UnavailableDerivation()
    return OpenAICompatibleDerivation(
        base_url=config.AI_URL,
        api_key=config.AI_API_KEY,
        summary_model=config.SUMMARY_MODEL,
        embedding_model=config.EMBEDDING_MODEL,
        timeout=config.DERIVE_TIMEOUT + 5,
    )


def build_ingestor(
    storage: StorageBundle,
    runtime: RuntimeConfig,
    cache_config: CacheConfig,
    derivation_config: DerivationConfig,
    derivation: Optional[DerivationService] = None,
) -> IngestorApp:
    background = BackgroundTasks()
    derivation = derivation or create_derivation(derivation_config)

    cache = TieredCache.build(
        storage.kv,
        background,
        dedup_ttl_seconds=cache_config.DEDUP_TTL_SECONDS,
        derived_ttl_seconds=cache_config.DERIVED_TTL_SECONDS,
    )
    runner = DerivationRunner(
        derivation,
        dimensions=derivation_config.EMBEDDING_DIMENSIONS,
        batch_size=cache_config.DERIVE_BATCH_SIZE,
        embedding_batch_size=derivation_config.EMBEDDING_BATCH_SIZE,
        timeout=derivation_config.DERIVE_TIMEOUT,
        query_timeout=derivation_config.QUERY_TIMEOUT,
        query_retries=derivation_config.QUERY_RETRIES,
        query_retry_wait=derivation_config.QUERY_RETRY_WAIT,
    )
    indexer = ContentIndexer(cache, runner, storage.vectors, vector_batch_size=cache_config.VECTOR_BATCH_SIZE)
    sync_service = SyncService(cache, indexer, runner, storage.vectors)

    authenticator = TokenAuthenticator(runtime.AUTH_TOKENS, allow_dev_tokens=runtime.ALLOW_DEV_TOKENS)
    api = IngestorAPI(sync_service, storage, authenticator)
    return IngestorApp(api, sync_service, storage, derivation, background)
