"""API endpoints."""

from .ai import AI
from .ingestor import Ingestor

__all__ = ["AI", "Ingestor"]
