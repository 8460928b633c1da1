"""
Derivation runner.

Wraps the external derivation service with the rules the ingestor depends
on: per-language batches, a bounded timeout per call, deterministic
fallbacks on failure and strict arity checks on every returned batch.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from infra.exceptions import ArityMismatchError, DerivationFailure
from infra.logger import get_logger
from ingestor.core.models.records import FALLBACK_SUMMARY, DerivedResult
from ingestor.core.ports.derivation import DerivationService

log = get_logger("ingestor.derivation")


@dataclass(frozen=True)
class DeriveItem:
    hash: str
    content: str
    language: str


@dataclass
class DerivationOutcome:
    results: Dict[str, DerivedResult] = field(default_factory=dict)
    # hashes of batches whose output could not be aligned with their input
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    calls: int = 0


class DerivationRunner:

    def __init__(
        self,
        service: DerivationService,
        dimensions: int,
        batch_size: int = 50,
        embedding_batch_size: int = 100,
        timeout: float = 25.0,
        query_timeout: float = 15.0,
        query_retries: int = 2,
        query_retry_wait: float = 0.5,
    ) -> None:
        self.service = service
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.embedding_batch_size = embedding_batch_size
        self.timeout = timeout
        self.query_timeout = query_timeout
        self.query_retries = query_retries
        self.query_retry_wait = query_retry_wait

    def zero_vector(self) -> List[float]:
        return [0.0] * self.dimensions

    async def derive(self, items: List[DeriveItem]) -> DerivationOutcome:
        outcome = DerivationOutcome()
        by_language: Dict[str, List[DeriveItem]] = {}
        for item in items:
            by_language.setdefault(item.language, []).append(item)

        for language, group in by_language.items():
            for start in range(0, len(group), self.batch_size):
                batch = group[start:start + self.batch_size]
                try:
                    results = await self._derive_batch(batch, language, outcome)
                except ArityMismatchError as e:
                    log.error("derivation.batch.arity_mismatch", language=language, size=len(batch), error=str(e))
                    outcome.failed.extend(item.hash for item in batch)
                    outcome.errors.append(f"{language} batch of {len(batch)}: {e}")
                    continue
                for item, result in zip(batch, results):
                    outcome.results[item.hash] = result

        log.info(
            "derivation.done",
            items=len(items),
            derived=len(outcome.results),
            failed=len(outcome.failed),
            calls=outcome.calls,
        )
        return outcome

    async def _derive_batch(self, batch: List[DeriveItem], language: str, outcome: DerivationOutcome) -> List[DerivedResult]:
        count = len(batch)
        outcome.calls += 1
        summaries = await self._bounded(self.service.summarize([i.content for i in batch], language), "summarize")
        if summaries is None:
            summaries = [FALLBACK_SUMMARY] * count
        elif len(summaries) != count:
            raise ArityMismatchError(count, len(summaries), "summaries")

        embeddings: List[List[float]] = [self.zero_vector() for _ in range(count)]
        # placeholder summaries carry nothing worth embedding
        pending = [i for i, s in enumerate(summaries) if s != FALLBACK_SUMMARY]

        for start in range(0, len(pending), self.embedding_batch_size):
            indices = pending[start:start + self.embedding_batch_size]
            outcome.calls += 1
            vectors = await self._bounded(self.service.embed([summaries[i] for i in indices]), "embed")
            if vectors is None:
                continue
            if len(vectors) != len(indices):
                raise ArityMismatchError(len(indices), len(vectors), "embeddings")
            for i, vector in zip(indices, vectors):
                if len(vector) != self.dimensions:
                    log.warning("derivation.embed.wrong_dimension", expected=self.dimensions, actual=len(vector))
                    continue
                embeddings[i] = vector

        return [DerivedResult(summary=s, embedding=e) for s, e in zip(summaries, embeddings)]

    async def _bounded(self, call, what: str) -> Optional[list]:
        """Run an external call under the timeout; None means use the fallback."""
        try:
            async with asyncio.timeout(self.timeout):
                return await call
        except TimeoutError:
            log.warning("derivation.timeout", call=what, timeout=self.timeout)
        except ArityMismatchError:
            raise
        except DerivationFailure as e:
            log.warning("derivation.failed", call=what, error=str(e))
        return None

    async def embed_query(self, text: str) -> List[float]:
        """Query embedding with retries. Returns the zero vector when every attempt fails."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.query_retries),
                wait=wait_fixed(self.query_retry_wait),
                retry=retry_if_exception_type((DerivationFailure, TimeoutError)),
                reraise=True,
            ):
                with attempt:
                    async with asyncio.timeout(self.query_timeout):
                        vectors = await self.service.embed([text])
                    if len(vectors) != 1:
                        raise ArityMismatchError(1, len(vectors), "embeddings")
                    return vectors[0]
        except (DerivationFailure, TimeoutError) as e:
            log.warning("derivation.query.failed", attempts=self.query_retries, error=str(e))
        return self.zero_vector()
