"""API endpoints for the OpenAI-compatible derivation service."""

from dataclasses import dataclass


@dataclass
class AI:
    CHAT_COMPLETIONS: str = "/chat/completions"
    EMBEDDINGS: str = "/embeddings"
