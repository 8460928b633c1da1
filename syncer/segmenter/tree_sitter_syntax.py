"""
Tree-sitter syntax provider.

Grammars come from tree-sitter-language-pack. Nodes are exposed through a
thin wrapper that converts tree-sitter byte offsets to character offsets, so
chunk references can slice the decoded file text directly. Only named
children are visited; punctuation never forms a chunk.
"""

import bisect
from itertools import accumulate
from typing import Dict, Iterable, List, Optional

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_parser

from infra.exceptions import ParseError
from infra.logger import get_logger
from syncer.core.ports.syntax import SyntaxProvider
from syncer.segmenter.languages import SEMANTIC_NODES

log = get_logger("syncer.segmenter.tree_sitter")


class _Offsets:
    """Byte offset -> character offset for one source text."""

    def __init__(self, text: str):
        # byte offset at which each character starts; None for pure ASCII
        self._starts: Optional[List[int]] = None
        if not text.isascii():
            self._starts = list(accumulate((len(ch.encode("utf-8")) for ch in text), initial=0))

    def char(self, byte_offset: int) -> int:
        if self._starts is None:
            return byte_offset
        return bisect.bisect_left(self._starts, byte_offset)


class TreeSitterNode:
    __slots__ = ("_node", "_tree", "type", "start_char", "end_char", "start_line", "end_line")

    def __init__(self, node: Node, tree: "_WrappedTree"):
        self._node = node
        self._tree = tree
        self.type = node.type
        self.start_char = tree.offsets.char(node.start_byte)
        self.end_char = tree.offsets.char(node.end_byte)
        self.start_line = node.start_point[0]
        end_row, end_column = node.end_point
        # a node ending right after a newline belongs to the previous line
        if end_column == 0 and end_row > self.start_line:
            end_row -= 1
        self.end_line = end_row

    @property
    def children(self) -> List["TreeSitterNode"]:
        return [self._tree.wrap(child) for child in self._node.named_children]

    @property
    def parent(self) -> Optional["TreeSitterNode"]:
        return self._tree.wrap(self._node.parent)

    def field(self, name: str) -> Optional["TreeSitterNode"]:
        return self._tree.wrap(self._node.child_by_field_name(name))

    def __repr__(self) -> str:
        return f"TreeSitterNode({self.type}, {self.start_char}:{self.end_char})"


class _WrappedTree:
    """Keeps one wrapper per tree-sitter node so parent/child links stay identical."""

    def __init__(self, text: str):
        self.offsets = _Offsets(text)
        self._nodes: Dict[int, TreeSitterNode] = {}

    def wrap(self, node: Optional[Node]) -> Optional[TreeSitterNode]:
        if node is None:
            return None
        wrapped = self._nodes.get(node.id)
        if wrapped is None:
            wrapped = self._nodes[node.id] = TreeSitterNode(node, self)
        return wrapped


class TreeSitterSyntaxProvider(SyntaxProvider):

    def __init__(self, languages: Optional[Iterable[str]] = None):
        self.languages = frozenset(languages if languages is not None else SEMANTIC_NODES)
        self._parsers: Dict[str, Parser] = {}

    def supports(self, language: str) -> bool:
        return language in self.languages

    def parse(self, text: str, language: str) -> TreeSitterNode:
        if not self.supports(language):
            raise ParseError(f"no tree-sitter grammar configured for {language!r}")

        tree = self._parser(language).parse(text.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            raise ParseError(f"{language} source contains syntax errors")
        return _WrappedTree(text).wrap(root)

    def _parser(self, language: str) -> Parser:
        parser = self._parsers.get(language)
        if parser is None:
            try:
                parser = get_parser(language)
            except (LookupError, ValueError) as e:
                raise ParseError(f"tree-sitter grammar for {language!r} is unavailable: {e}") from e
            self._parsers[language] = parser
            log.debug("segmenter.grammar.loaded", language=language)
        return parser
