"""
Dimension Validator

Validates at startup that the configured embedding size, the vector table
and (when reachable) the embedding model agree.
"""

import asyncio
from typing import Optional

from infra.exceptions import DerivationFailure, FatalValidationError
from infra.logger import get_logger
from ingestor.core.ports.derivation import DerivationService
from ingestor.core.ports.vector_index import VectorIndex

log = get_logger("ingestor.dimension_validator")


class DimensionValidator:

    def __init__(
        self,
        dimensions: int,
        vectors: VectorIndex,
        derivation: Optional[DerivationService] = None,
        check_timeout: float = 10.0,
    ) -> None:
        self.dimensions = dimensions
        self.vectors = vectors
        self.derivation = derivation
        self.check_timeout = check_timeout

    async def validate_dimensions(self) -> None:
        """Raises FatalValidationError on a mismatch. An unreachable model is only logged."""
        db_dim = await self.vectors.get_dimension()
        log.info("dimension_validator.db_dimension", dimension=db_dim, configured=self.dimensions)
        if db_dim is not None and db_dim != self.dimensions:
            raise FatalValidationError(
                f"Embedding dimension mismatch: configured {self.dimensions}, "
                f"but the vector table expects {db_dim}."
            )

        if self.derivation is None:
            return
        try:
            async with asyncio.timeout(self.check_timeout):
                vectors = await self.derivation.embed(["dimension check"])
        except (DerivationFailure, TimeoutError) as e:
            log.warning("dimension_validator.model_unreachable", error=str(e))
            return

        model_dim = len(vectors[0]) if vectors else 0
        log.info("dimension_validator.model_dimension", dimension=model_dim)
        if model_dim != self.dimensions:
            raise FatalValidationError(
                f"Embedding dimension mismatch: model produces vectors of size {model_dim}, "
                f"but {self.dimensions} is configured."
            )
        log.info("dimension_validator.validated", dimension=self.dimensions)
