import pytest

from infra.exceptions import ParseError
from syncer.segmenter import TreeSitterSyntaxProvider

SOURCE = '''@route("/users")
def handler(request, *args, **kwargs) -> Response:
    return Response()


class Greeter(Base):
    def greet(self):
        return "hi"
'''


@pytest.fixture
def provider():
    return TreeSitterSyntaxProvider()


def _text(source, node):
    return source[node.start_char:node.end_char]


@pytest.mark.unit
class TestTreeSitterSyntaxProvider:

    def test_supports_every_semantic_language(self, provider):
        for language in ("python", "javascript", "typescript", "tsx", "go", "rust"):
            assert provider.supports(language)
        assert not provider.supports("java")
        assert not TreeSitterSyntaxProvider(["python"]).supports("rust")

    def test_decorated_function_fields(self, provider):
        root = provider.parse(SOURCE, "python")
        decorated = root.children[0]

        assert decorated.type == "decorated_definition"
        assert (decorated.start_line, decorated.end_line) == (0, 2)
        function = decorated.field("definition")
        assert function.type == "function_definition"
        assert _text(SOURCE, function.field("name")) == "handler"
        params = [_text(SOURCE, p) for p in function.field("parameters").children]
        assert params == ["request", "*args", "**kwargs"]
        assert _text(SOURCE, function.field("return_type")) == "Response"

    def test_parent_links_are_stable(self, provider):
        root = provider.parse(SOURCE, "python")
        decorated = root.children[0]
        function = decorated.field("definition")

        assert function.parent is decorated
        assert decorated.parent is root
        assert root.parent is None

    def test_class_fields(self, provider):
        root = provider.parse(SOURCE, "python")
        klass = root.children[1]

        assert klass.type == "class_definition"
        assert _text(SOURCE, klass.field("name")) == "Greeter"
        assert (klass.start_line, klass.end_line) == (5, 7)
        body = klass.field("body")
        assert [child.type for child in body.children] == ["function_definition"]

    def test_non_ascii_offsets_are_characters(self, provider):
        source = 'NAME = "ünïcode ✓"\n\n\ndef greet():\n    return NAME\n'
        root = provider.parse(source, "python")
        function = root.children[-1]

        assert _text(source, function) == "def greet():\n    return NAME"
        assert _text(source, function.field("name")) == "greet"

    def test_syntax_error_raises(self, provider):
        with pytest.raises(ParseError):
            provider.parse("def broken(:\n    return 1\n", "python")

    def test_unsupported_language_raises(self, provider):
        with pytest.raises(ParseError):
            provider.parse("class Main {}", "java")
