"""Config constants for services."""

from .endpoints import AI, Ingestor
from .timeouts import Timeouts

__all__ = ["AI", "Ingestor", "Timeouts"]
