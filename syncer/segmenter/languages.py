"""Language detection and per-language semantic node tables."""

from pathlib import PurePosixPath
from typing import Dict, FrozenSet

from syncer.core.models.chunk import ChunkType

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
}

DEFAULT_LANGUAGE = "text"

_JS_NODES = frozenset({
    "function_declaration",
    "function_expression",
    "arrow_function",
    "method_definition",
    "class_declaration",
    "generator_function_declaration",
})

_TS_NODES = _JS_NODES | {
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
}

SEMANTIC_NODES: Dict[str, FrozenSet[str]] = {
    "javascript": _JS_NODES,
    "typescript": _TS_NODES,
    "tsx": _TS_NODES,
    "python": frozenset({
        "function_definition",
        "class_definition",
        "decorated_definition",
    }),
    "go": frozenset({
        "function_declaration",
        "method_declaration",
        "type_declaration",
    }),
    "rust": frozenset({
        "function_item",
        "impl_item",
        "struct_item",
        "enum_item",
        "trait_item",
    }),
}

NODE_CHUNK_TYPES: Dict[str, ChunkType] = {
    "function_declaration": ChunkType.FUNCTION,
    "function_definition": ChunkType.FUNCTION,
    "function_item": ChunkType.FUNCTION,
    "function_expression": ChunkType.FUNCTION,
    "generator_function_declaration": ChunkType.FUNCTION,
    "arrow_function": ChunkType.FUNCTION,
    "decorated_definition": ChunkType.FUNCTION,
    "method_definition": ChunkType.METHOD,
    "method_declaration": ChunkType.METHOD,
    "class_declaration": ChunkType.CLASS,
    "class_definition": ChunkType.CLASS,
    "interface_declaration": ChunkType.INTERFACE,
    "type_alias_declaration": ChunkType.TYPE,
    "type_declaration": ChunkType.TYPE,
    "enum_declaration": ChunkType.ENUM,
    "enum_item": ChunkType.ENUM,
    "struct_item": ChunkType.STRUCT,
    "impl_item": ChunkType.IMPL,
    "trait_item": ChunkType.TRAIT,
}


def detect_language(path: str) -> str:
    return EXTENSION_LANGUAGES.get(PurePosixPath(path).suffix.lower(), DEFAULT_LANGUAGE)


def semantic_node_types(language: str) -> FrozenSet[str]:
    return SEMANTIC_NODES.get(language, frozenset())


def chunk_type_for(node_type: str) -> ChunkType:
    return NODE_CHUNK_TYPES.get(node_type, ChunkType.BLOCK)
