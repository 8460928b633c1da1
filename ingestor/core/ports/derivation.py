"""Derivation service port: summaries and embeddings from an external model."""

from abc import ABC, abstractmethod
from typing import List


class DerivationService(ABC):

    @abstractmethod
    async def summarize(self, texts: List[str], language: str) -> List[str]:
        """One summary per text, same order. Raises DerivationFailure."""
        pass

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """One vector per text, same order. Raises DerivationFailure."""
        pass

    async def close(self) -> None:
        pass
