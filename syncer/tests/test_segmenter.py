import pytest

from infra.hashing import content_hash
from syncer.core.models.chunk import ChunkOrigin, ChunkType
from syncer.core.ports.syntax import SyntaxProvider
from syncer.segmenter import SegmenterConfig, SemanticSegmenter

SAMPLE = '''import os

DEFAULT = 3


def load_config(path: str) -> dict:
    with open(path) as f:
        return {"path": path, "size": len(f.read())}


@cached
async def fetch_user(user_id, timeout=5):
    return await client.get(user_id, timeout=timeout)


class Repository:
    def __init__(self, root):
        self.root = root

    def find(self, name):
        return os.path.join(self.root, name)
'''

REPOSITORY = '''class Repository:
    def __init__(self, root):
        self.root = root

    def find(self, name):
        return os.path.join(self.root, name)
'''

TS_SAMPLE = '''import { db } from "./db";

interface User {
  id: string;
  name: string;
}

export async function loadUser(id: string): Promise<User> {
  return db.find(id);
}

const toSlug = (name: string): string => name.toLowerCase().trim();

class UserService {
  constructor(private readonly store: Map<string, User>) {}

  async rename(user: User, name: string): Promise<void> {
    user.name = name;
    this.store.set(user.id, user);
  }
}
'''

RUST_SAMPLE = '''use std::collections::HashMap;

pub struct Cache {
    entries: HashMap<String, String>,
}

impl Cache {
    pub fn new() -> Self {
        Cache { entries: HashMap::new() }
    }

    pub fn get(&self, key: &str) -> Option<&String> {
        self.entries.get(key)
    }
}

pub trait Store {
    fn put(&mut self, key: String, value: String);
}
'''


class ExplodingProvider(SyntaxProvider):

    def supports(self, language):
        return True

    def parse(self, text, language):
        raise IndexError("line index out of range")


def _segmenter(**overrides):
    params = {"min_chunk_size": 10}
    params.update(overrides)
    return SemanticSegmenter(SegmenterConfig(**params))


def _text(source, chunk):
    return source[chunk.reference.char_start:chunk.reference.char_end]


@pytest.mark.unit
class TestSemanticChunks:

    def test_definitions_and_gaps(self):
        chunks = _segmenter().segment(SAMPLE, "src/app.py")

        assert [c.name for c in chunks] == [None, "load_config", "fetch_user", "Repository"]
        assert [c.type for c in chunks] == [ChunkType.BLOCK, ChunkType.FUNCTION, ChunkType.FUNCTION, ChunkType.CLASS]
        assert [(c.reference.line_start, c.reference.line_end) for c in chunks] == [
            (1, 3), (6, 8), (11, 13), (16, 21),
        ]
        assert chunks[0].metadata.origin is ChunkOrigin.GAP_FILL
        assert all(c.language == "python" for c in chunks)
        assert all(c.reference.relative_path == "src/app.py" for c in chunks)

    def test_function_metadata(self):
        chunks = {c.name: c for c in _segmenter().segment(SAMPLE, "src/app.py")}

        load_config = chunks["load_config"].metadata
        assert load_config.parameters == ("path: str",)
        assert load_config.return_type == "dict"
        assert load_config.is_async is False

        fetch_user = chunks["fetch_user"]
        assert _text(SAMPLE, fetch_user).startswith("@cached\nasync def fetch_user")
        assert fetch_user.metadata.is_async is True
        assert fetch_user.metadata.parameters == ("user_id", "timeout=5")
        assert fetch_user.to_sync_payload()["metadata"] == {
            "parameters": ["user_id", "timeout=5"],
            "async": True,
        }

    def test_references_reproduce_hashes(self):
        chunks = _segmenter().segment(SAMPLE, "src/app.py")
        for chunk in chunks:
            text = _text(SAMPLE, chunk)
            assert content_hash(text) == chunk.content_hash
            assert len(text) == chunk.char_count

    def test_chunks_do_not_hold_text(self):
        chunk = _segmenter().segment(SAMPLE, "src/app.py")[1]
        assert not hasattr(chunk, "text")
        assert "content" not in chunk.to_sync_payload()

    def test_every_non_blank_line_is_covered(self):
        chunks = _segmenter().segment(SAMPLE, "src/app.py")
        covered = set()
        for chunk in chunks:
            covered.update(range(chunk.reference.line_start, chunk.reference.line_end + 1))
        non_blank = {i + 1 for i, line in enumerate(SAMPLE.split("\n")) if line.strip()}
        assert non_blank <= covered

    def test_segmentation_is_deterministic(self):
        first = _segmenter().segment(SAMPLE, "src/app.py")
        second = _segmenter().segment(SAMPLE, "src/app.py")
        assert first == second

    def test_oversized_class_is_split_into_methods(self):
        chunks = _segmenter(max_chunk_size=120).segment(REPOSITORY, "repo.py")

        assert [c.name for c in chunks] == [None, "__init__", "find"]
        assert _text(REPOSITORY, chunks[0]) == "class Repository:"
        assert chunks[1].metadata.parent == "Repository"
        assert chunks[1].metadata.parameters == ("self", "root")
        assert chunks[2].metadata.parent == "Repository"

    def test_oversized_leaf_definition_is_kept_whole(self):
        source = (
            "def long_function():\n"
            "    first = 'aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa'\n"
            "    second = 'bbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb'\n"
            "    return first + second\n"
        )
        chunks = _segmenter(max_chunk_size=50).segment(source, "long.py")

        assert len(chunks) == 1
        assert chunks[0].name == "long_function"
        assert chunks[0].char_count > 50

    def test_definitions_below_minimum_are_dropped(self):
        source = "def a():\n    pass\n\n\ndef b():\n    pass\n"
        chunks = _segmenter(min_chunk_size=40).segment(source, "tiny.py")
        assert chunks == []

    def test_non_ascii_offsets(self):
        source = (
            'GREETING = "héllo wörld ✓"\n'
            "\n"
            "\n"
            "def greet(name):\n"
            '    return f"{GREETING}, {name} ß ünïcode"\n'
        )
        chunks = _segmenter().segment(source, "greet.py")
        greet = next(c for c in chunks if c.name == "greet")
        assert _text(source, greet) == 'def greet(name):\n    return f"{GREETING}, {name} ß ünïcode"'
        assert greet.content_hash == content_hash(_text(source, greet))


@pytest.mark.unit
class TestTypeScriptChunks:

    def test_definitions(self):
        chunks = _segmenter().segment(TS_SAMPLE, "src/users.ts")

        assert [c.name for c in chunks] == [None, "User", "loadUser", "toSlug", "UserService"]
        assert [c.type for c in chunks] == [
            ChunkType.BLOCK, ChunkType.INTERFACE, ChunkType.FUNCTION, ChunkType.FUNCTION, ChunkType.CLASS,
        ]
        assert all(c.language == "typescript" for c in chunks)
        assert chunks[1].reference.line_start == 3
        assert chunks[4].reference.line_end == 21

    def test_exported_async_function(self):
        chunks = {c.name: c for c in _segmenter().segment(TS_SAMPLE, "src/users.ts")}

        load_user = chunks["loadUser"].metadata
        assert load_user.exported is True
        assert load_user.is_async is True
        assert load_user.parameters == ("id: string",)
        assert "Promise<User>" in load_user.return_type
        assert chunks["UserService"].metadata.exported is False
        assert _text(TS_SAMPLE, chunks["toSlug"]).startswith("(name: string)")

    def test_oversized_class_is_split_into_methods(self):
        chunks = _segmenter(max_chunk_size=150).segment(TS_SAMPLE, "src/users.ts")
        by_name = {c.name: c for c in chunks if c.name}

        assert "UserService" not in by_name
        assert by_name["constructor"].metadata.parent == "UserService"
        rename = by_name["rename"].metadata
        assert rename.parent == "UserService"
        assert rename.is_async is True
        assert rename.parameters == ("user: User", "name: string")
        for chunk in chunks:
            assert content_hash(_text(TS_SAMPLE, chunk)) == chunk.content_hash


@pytest.mark.unit
class TestRustChunks:

    def test_items(self):
        chunks = _segmenter().segment(RUST_SAMPLE, "src/cache.rs")

        assert [c.name for c in chunks] == [None, "Cache", "Cache", "Store"]
        assert [c.type for c in chunks] == [ChunkType.BLOCK, ChunkType.STRUCT, ChunkType.IMPL, ChunkType.TRAIT]
        assert [(c.reference.line_start, c.reference.line_end) for c in chunks] == [
            (1, 1), (3, 5), (7, 15), (17, 19),
        ]
        assert all(c.language == "rust" for c in chunks)

    def test_oversized_impl_is_split_into_functions(self):
        chunks = _segmenter(max_chunk_size=100).segment(RUST_SAMPLE, "src/cache.rs")
        by_name = {c.name: c for c in chunks if c.type is ChunkType.FUNCTION}

        assert set(by_name) == {"new", "get"}
        assert by_name["new"].metadata.parent == "Cache"
        get = by_name["get"].metadata
        assert get.parent == "Cache"
        assert get.parameters == ("&self", "key: &str")
        assert get.return_type == "Option<&String>"


@pytest.mark.unit
class TestFallbackChunks:

    def test_unsupported_language_uses_overlapping_windows(self):
        source = "".join(f"line {i:03d} of a plain text document\n" for i in range(1, 121))
        chunks = SemanticSegmenter().segment(source, "notes.txt")

        assert [c.reference.line_start for c in chunks] == [1, 41, 81]
        assert [c.reference.line_end for c in chunks] == [50, 90, 120]
        assert all(c.metadata.origin is ChunkOrigin.FALLBACK for c in chunks)
        assert all(c.type is ChunkType.BLOCK and c.language == "text" for c in chunks)

    def test_syntax_error_falls_back(self):
        source = "def broken(:\n    return 1\n" * 3
        chunks = _segmenter().segment(source, "broken.py")

        assert len(chunks) == 1
        assert chunks[0].metadata.to_dict() == {"fallback": True}
        assert chunks[0].language == "python"

    def test_language_without_grammar_falls_back(self):
        source = "class Main {\n  int run() { return 1; }\n}\n"
        chunks = _segmenter().segment(source, "Main.java")
        assert len(chunks) == 1
        assert chunks[0].metadata.origin is ChunkOrigin.FALLBACK
        assert chunks[0].language == "java"

    def test_carriage_return_line_endings(self):
        source = "import os\r\r\rdef handler(event, context):\r    return event\r"
        chunks = _segmenter().segment(source, "handler.py")

        assert chunks
        assert any("def handler" in _text(source, c) for c in chunks)
        for chunk in chunks:
            assert content_hash(_text(source, chunk)) == chunk.content_hash

    def test_failing_provider_falls_back(self):
        segmenter = SemanticSegmenter(SegmenterConfig(min_chunk_size=10), providers=[ExplodingProvider()])
        chunks = segmenter.segment(SAMPLE, "src/app.py")

        assert chunks
        assert all(c.metadata.origin is ChunkOrigin.FALLBACK for c in chunks)
        assert chunks[0].reference.line_start == 1

    def test_empty_file(self):
        assert SemanticSegmenter().segment("", "empty.py") == []
        assert SemanticSegmenter().segment("\n\n   \n", "blank.txt") == []

    def test_config_validation(self):
        with pytest.raises(ValueError):
            SegmenterConfig(max_chunk_size=10, min_chunk_size=20)
        with pytest.raises(ValueError):
            SegmenterConfig(fallback_line_size=10, fallback_overlap=10)
