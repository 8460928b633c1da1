from syncer.segmenter.languages import detect_language
from syncer.segmenter.segmenter import SegmenterConfig, SemanticSegmenter
from syncer.segmenter.tree_sitter_syntax import TreeSitterSyntaxProvider

__all__ = ["SemanticSegmenter", "SegmenterConfig", "TreeSitterSyntaxProvider", "detect_language"]
