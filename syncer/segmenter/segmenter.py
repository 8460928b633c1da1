"""
Semantic segmenter.

Splits a file into hashed chunks aligned to definitions (functions, classes,
methods, ...). Text between definitions is covered by gap-fill blocks; files
without a usable syntax tree fall back to overlapping line windows.
"""

import bisect
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from infra.exceptions import ParseError
from infra.logger import get_logger
from syncer.core.models.chunk import (
    ChunkMetadata,
    ChunkOrigin,
    ChunkReference,
    ChunkType,
    HashedChunk,
)
from syncer.core.ports.syntax import SyntaxNode, SyntaxProvider
from syncer.segmenter.languages import chunk_type_for, detect_language, semantic_node_types
from syncer.segmenter.tree_sitter_syntax import TreeSitterSyntaxProvider

log = get_logger("syncer.segmenter")


@dataclass(frozen=True)
class SegmenterConfig:
    max_chunk_size: int = 8000
    min_chunk_size: int = 100
    fallback_line_size: int = 50
    fallback_overlap: int = 10

    def __post_init__(self) -> None:
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError("min_chunk_size must not exceed max_chunk_size")
        if not 0 <= self.fallback_overlap < self.fallback_line_size:
            raise ValueError("fallback_overlap must be in [0, fallback_line_size)")


class _Lines:
    def __init__(self, text: str):
        self.text = text
        self.starts = [0]
        pos = text.find("\n")
        while pos != -1:
            self.starts.append(pos + 1)
            pos = text.find("\n", pos + 1)

    @property
    def count(self) -> int:
        return len(self.starts)

    def line_of(self, offset: int) -> int:
        """1-based line holding the character at offset."""
        return bisect.bisect_right(self.starts, offset)

    def trimmed_span(self, first: int, last: int) -> Optional[Tuple[int, int]]:
        """Char span of lines first..last (1-based) without surrounding whitespace."""
        start = self.starts[first - 1]
        end = self.starts[last] - 1 if last < self.count else len(self.text)
        raw = self.text[start:end]
        stripped = raw.strip()
        if not stripped:
            return None
        start += len(raw) - len(raw.lstrip())
        return start, start + len(stripped)


class SemanticSegmenter:

    def __init__(
        self,
        config: Optional[SegmenterConfig] = None,
        providers: Optional[Sequence[SyntaxProvider]] = None,
    ):
        self.config = config or SegmenterConfig()
        self._providers = list(providers) if providers is not None else [TreeSitterSyntaxProvider()]

    def segment(self, text: str, relative_path: str, language: Optional[str] = None) -> List[HashedChunk]:
        language = language or detect_language(relative_path)
        lines = _Lines(text)

        node_types = semantic_node_types(language)
        provider = self._provider_for(language)
        if provider is None or not node_types:
            return self._fallback(lines, language, relative_path)

        try:
            root = provider.parse(text, language)
            chunks = self._visit(root, text, language, relative_path, node_types, None)
        except ParseError as e:
            log.warning("segmenter.parse.failed", path=relative_path, language=language, error=str(e))
            return self._fallback(lines, language, relative_path)
        except Exception as e:
            log.error(
                "segmenter.provider.failed",
                path=relative_path,
                language=language,
                error=str(e),
                exc_info=True,
            )
            return self._fallback(lines, language, relative_path)

        if not chunks:
            return self._fallback(lines, language, relative_path)
        return self._fill_gaps(chunks, lines, language, relative_path)

    def _provider_for(self, language: str) -> Optional[SyntaxProvider]:
        for provider in self._providers:
            if provider.supports(language):
                return provider
        return None

    def _visit(
        self,
        node: SyntaxNode,
        text: str,
        language: str,
        path: str,
        node_types: frozenset,
        parent_name: Optional[str],
    ) -> List[HashedChunk]:
        if node.type in node_types:
            size = node.end_char - node.start_char
            if size >= self.config.min_chunk_size:
                if size <= self.config.max_chunk_size:
                    return [self._semantic_chunk(node, text, language, path, parent_name)]
                # too large: prefer nested definitions, keep the whole node if there are none
                nested = self._visit_children(node, text, language, path, node_types, parent_name)
                return nested or [self._semantic_chunk(node, text, language, path, parent_name)]

        return self._visit_children(node, text, language, path, node_types, parent_name)

    def _visit_children(self, node, text, language, path, node_types, parent_name) -> List[HashedChunk]:
        # only definitions open a scope; wrappers such as export statements do not
        scope = (_node_name(node, text) if node.type in node_types else None) or parent_name
        chunks: List[HashedChunk] = []
        for child in node.children:
            chunks.extend(self._visit(child, text, language, path, node_types, scope))
        return chunks

    def _semantic_chunk(self, node, text, language, path, parent_name) -> HashedChunk:
        target = node.field("definition") or node
        reference = ChunkReference(
            relative_path=path,
            line_start=node.start_line + 1,
            line_end=node.end_line + 1,
            char_start=node.start_char,
            char_end=node.end_char,
        )
        return HashedChunk.from_text(
            text[node.start_char:node.end_char],
            chunk_type_for(target.type),
            _node_name(node, text),
            language,
            reference,
            _metadata(node, target, text, parent_name),
        )

    def _fill_gaps(self, chunks: List[HashedChunk], lines: _Lines, language: str, path: str) -> List[HashedChunk]:
        ordered = sorted(chunks, key=lambda c: (c.reference.line_start, c.reference.char_start))
        result: List[HashedChunk] = []
        current = 1

        for chunk in ordered:
            if chunk.reference.line_start > current:
                gap = self._span_chunk(lines, current, chunk.reference.line_start - 1, language, path, ChunkOrigin.GAP_FILL)
                if gap is not None:
                    result.append(gap)
            result.append(chunk)
            current = max(current, chunk.reference.line_end + 1)

        if current <= lines.count:
            tail = self._span_chunk(lines, current, lines.count, language, path, ChunkOrigin.GAP_FILL)
            if tail is not None:
                result.append(tail)
        return result

    def _fallback(self, lines: _Lines, language: str, path: str) -> List[HashedChunk]:
        log.debug("segmenter.fallback", path=path, language=language, lines=lines.count)
        size = self.config.fallback_line_size
        step = size - self.config.fallback_overlap
        chunks: List[HashedChunk] = []

        for offset in range(0, lines.count, step):
            last = min(offset + size, lines.count)
            chunk = self._span_chunk(lines, offset + 1, last, language, path, ChunkOrigin.FALLBACK)
            if chunk is not None:
                chunks.append(chunk)
            if last == lines.count:
                break
        return chunks

    def _span_chunk(
        self,
        lines: _Lines,
        first: int,
        last: int,
        language: str,
        path: str,
        origin: ChunkOrigin,
    ) -> Optional[HashedChunk]:
        span = lines.trimmed_span(first, last)
        if span is None:
            return None
        start, end = span
        if end - start < self.config.min_chunk_size:
            return None

        reference = ChunkReference(
            relative_path=path,
            line_start=lines.line_of(start),
            line_end=lines.line_of(end - 1),
            char_start=start,
            char_end=end,
        )
        return HashedChunk.from_text(
            lines.text[start:end],
            ChunkType.BLOCK,
            None,
            language,
            reference,
            ChunkMetadata(origin=origin),
        )


def _text(node: Optional[SyntaxNode], source: str) -> Optional[str]:
    if node is None:
        return None
    return source[node.start_char:node.end_char]


def _node_name(node: SyntaxNode, source: str) -> Optional[str]:
    target = node.field("definition") or node
    name = target.field("name") or target.field("identifier")
    if name is not None:
        return _text(name, source)

    if node.type == "arrow_function" and node.parent is not None and node.parent.type == "variable_declarator":
        return _text(node.parent.field("name"), source)

    # rust: impl blocks are named by the implemented type
    if node.type == "impl_item":
        return _text(node.field("type"), source)
    return None


def _metadata(node: SyntaxNode, target: SyntaxNode, source: str, parent_name: Optional[str]) -> ChunkMetadata:
    params = target.field("parameters")
    return ChunkMetadata(
        origin=ChunkOrigin.SEMANTIC,
        parent=parent_name,
        parameters=tuple(_text(p, source) for p in params.children) if params is not None else (),
        return_type=_text(target.field("return_type"), source),
        is_async=source[target.start_char:target.end_char].startswith("async "),
        exported=node.parent is not None and node.parent.type == "export_statement",
    )
