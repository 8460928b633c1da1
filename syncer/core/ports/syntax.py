"""
Syntax provider port.

The segmenter only needs a tree of typed nodes with character and line
spans, named children and a few named fields. Any parser can be plugged in
by implementing SyntaxProvider and returning nodes shaped like SyntaxNode.
"""

from abc import ABC, abstractmethod
from typing import Optional, Protocol, Sequence


class SyntaxNode(Protocol):
    type: str
    start_char: int
    end_char: int
    # 0-based, inclusive
    start_line: int
    end_line: int
    parent: Optional["SyntaxNode"]

    @property
    def children(self) -> Sequence["SyntaxNode"]: ...

    def field(self, name: str) -> Optional["SyntaxNode"]: ...


class SyntaxProvider(ABC):

    @abstractmethod
    def supports(self, language: str) -> bool:
        pass

    @abstractmethod
    def parse(self, text: str, language: str) -> SyntaxNode:
        """
        Parse text into a root node.

        Raises:
            ParseError: the text cannot be parsed as the given language
        """
        pass
