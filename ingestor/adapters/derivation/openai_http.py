"""
Derivation adapter for OpenAI-compatible model servers.

Summaries come from /chat/completions with a numbered-list prompt, one call
per batch; embeddings from /embeddings. Timeouts and fallbacks are the
caller's concern: this adapter only raises DerivationFailure.
"""

import re
from typing import List, Optional

import httpx

from infra.config import AI
from infra.exceptions import DerivationFailure
from infra.logger import get_logger
from ingestor.core.models.records import FALLBACK_SUMMARY
from ingestor.core.ports.derivation import DerivationService

log = get_logger("ingestor.derivation.openai")

_THINK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)

PROMPT = """Summarize each {language} code chunk in natural language for semantic search.

Rules:
- Use plain English verbs (sends, calculates, stores, retrieves, validates, etc)
- Focus on WHAT it does, not HOW
- Include inputs and outputs in natural language
- Format: [N] summary text (numbered list starting from 1)
- NO code syntax, NO thinking process, NO XML tags
- Output EXACTLY {count} summaries, one per chunk

{chunks}

Output {count} numbered summaries (format: [1] summary, [2] summary, etc):"""


def build_prompt(texts: List[str], language: str) -> str:
    chunks = "\n".join(f"[CHUNK {i}]\n{text}\n" for i, text in enumerate(texts, start=1))
    return PROMPT.format(language=language, count=len(texts), chunks=chunks)


def parse_summaries(response_text: str, count: int) -> List[str]:
    """Pick "[N] text" lines for N in 1..count; missing entries get the placeholder."""
    cleaned = _THINK.sub("", response_text).strip()
    lines = [line.strip() for line in cleaned.splitlines()]
    lines = [line for line in lines if line and not line.startswith("<")]

    summaries: List[str] = []
    for n in range(1, count + 1):
        pattern = re.compile(rf"^\[{n}\]\s*(.+)$")
        found = next((m.group(1).strip() for m in map(pattern.match, lines) if m), None)
        summaries.append(found or FALLBACK_SUMMARY)
    return summaries


class OpenAICompatibleDerivation(DerivationService):

    def __init__(
        self,
        base_url: str,
        api_key: str,
        summary_model: str,
        embedding_model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.summary_model = summary_model
        self.embedding_model = embedding_model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def summarize(self, texts: List[str], language: str) -> List[str]:
        if not texts:
            return []
        result = await self._post(AI.CHAT_COMPLETIONS, {
            "model": self.summary_model,
            "messages": [{"role": "user", "content": build_prompt(texts, language)}],
            "max_tokens": len(texts) * 100,
            "temperature": 0.3,
        })
        try:
            content = result["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise DerivationFailure(f"Malformed chat completion response: {e}") from e
        return parse_summaries(content, len(texts))

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        result = await self._post(AI.EMBEDDINGS, {"model": self.embedding_model, "input": texts})
        try:
            items = sorted(result["data"], key=lambda item: item.get("index", 0))
            return [list(item["embedding"]) for item in items]
        except (KeyError, TypeError) as e:
            raise DerivationFailure(f"Malformed embeddings response: {e}") from e

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            log.warning("derivation.http.failed", path=path, error=str(e))
            raise DerivationFailure(f"{path}: {e}") from e
        except ValueError as e:
            raise DerivationFailure(f"{path}: invalid JSON: {e}") from e


class UnavailableDerivation(DerivationService):
    """Used when no model server is configured. Every chunk ends up with the fallback result."""

    async def summarize(self, texts: List[str], language: str) -> List[str]:
        raise DerivationFailure("No derivation service configured")

    async def embed(self, texts: List[str]) -> List[List[float]]:
        raise DerivationFailure("No derivation service configured")
