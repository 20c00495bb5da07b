"""Tests for the tree-sitter engine and the Node view.

Covers: parsing per language, escape decoding, string literal values,
object flattening, structural queries and tree traversal.
"""

import pytest

from jsprobe.ast_engine import (
    ASTEngine,
    Node,
    ParsedAST,
    decode_escapes,
    template_parts,
    unquote,
)
from jsprobe.core.exceptions import QueryError, UnsupportedLanguageError


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Create a shared ASTEngine instance."""
    return ASTEngine()


def _first(engine: ASTEngine, code: str, node_type: str, language: str = "javascript") -> Node:
    """Parse *code* and return the first node of *node_type*."""
    ast = engine.parse(code, language=language)
    nodes = engine.find_nodes_by_type(ast, node_type)
    assert nodes, f"no {node_type} in {code!r}"
    return nodes[0]


# ===========================================================================
# Parsing
# ===========================================================================


class TestASTEngineParsing:
    """Test parsing for different languages and error detection."""

    def test_parse_javascript(self, engine):
        """JavaScript source parses successfully with no errors."""
        code = "const x = 42;"
        ast = engine.parse(code)
        assert isinstance(ast, ParsedAST)
        assert ast.language == "javascript"
        assert ast.source_code == code
        assert not ast.has_errors

    def test_parse_typescript(self, engine):
        """TypeScript source parses successfully with no errors."""
        ast = engine.parse("const x: number = 42;", language="typescript")
        assert ast.language == "typescript"
        assert not ast.has_errors

    def test_parse_tsx(self, engine):
        """TSX source parses successfully with no errors."""
        ast = engine.parse("const App = () => <div>Hello</div>;", language="tsx")
        assert ast.language == "tsx"
        assert not ast.has_errors

    def test_parse_bytes(self, engine):
        """UTF-8 bytes are accepted as well as text."""
        ast = engine.parse('const s = "héllo";'.encode())
        assert _first(engine, 'const s = "héllo";', "string").decoded_string() == "héllo"
        assert ast.source_code == 'const s = "héllo";'

    def test_parse_error_detected(self, engine):
        """Malformed code still produces a tree, flagged as erroneous."""
        ast = engine.parse("const x = {{{;")
        assert ast.has_errors

    def test_parse_empty_source(self, engine):
        """Empty input yields an empty program."""
        ast = engine.parse("")
        assert ast.root.type == "program"
        assert ast.root.named_children() == []

    def test_unsupported_language_error(self, engine):
        """Requesting an unsupported language raises a ValueError subclass."""
        with pytest.raises(UnsupportedLanguageError, match="Unsupported language"):
            engine.parse("code", language="python")
        with pytest.raises(ValueError):
            engine.parse("code", language="ruby")

    def test_max_expression_depth_recorded(self, engine):
        """The depth limit travels with the tree."""
        ast = engine.parse("x", max_expression_depth=7)
        assert ast.max_expression_depth == 7

    def test_get_text(self, engine):
        """get_text extracts the correct source fragment."""
        code = "const x = 42;"
        ast = engine.parse(code)
        assert ast.get_text(ast.root_node) == code


# ===========================================================================
# String decoding
# ===========================================================================


class TestDecodeEscapes:
    """Test the JavaScript escape table."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("abc", "abc"),
            (r"a\nb", "a\nb"),
            (r"tab\there", "tab\there"),
            (r"\r\b\f\v", "\r\b\f\v"),
            (r"\x41\x62", "Ab"),
            (r"\u0041", "A"),
            (r"\u{1F600}", "\U0001F600"),
            (r"\ud83d\ude00", "\U0001F600"),
            (r"\0", "\0"),
            (r"\101", "A"),
            (r"\'\"\`\\", "'\"`\\"),
            ("line\\\ncontinued", "linecontinued"),
            (r"\q\/", "q/"),
        ],
    )
    def test_escape_table(self, raw, expected):
        assert decode_escapes(raw) == expected

    def test_lone_surrogate_replaced(self):
        """A lone surrogate cannot be encoded and becomes U+FFFD."""
        assert decode_escapes(r"x\ud800y") == "x\ufffdy"

    def test_out_of_range_code_point_kept(self):
        assert decode_escapes(r"\u{110000}") == r"\u{110000}"

    def test_unquote(self):
        assert unquote('"abc"') == "abc"
        assert unquote("'abc'") == "abc"
        assert unquote("`abc`") == "abc"
        assert unquote("abc") == "abc"
        assert unquote('"unterminated') == "unterminated"


class TestNodeStrings:
    """Test string values read from literal nodes."""

    @pytest.mark.parametrize(
        "code, node_type",
        [
            ('x = "abc";', "string"),
            ("x = 'abc';", "string"),
            ("x = `abc`;", "template_string"),
        ],
    )
    def test_quote_styles_decode_alike(self, engine, code, node_type):
        """Double, single and backtick quoting all give the bare value."""
        assert _first(engine, code, node_type).decoded_string() == "abc"

    def test_newline_escape(self, engine):
        node = _first(engine, r'x = "a\nb";', "string")
        assert node.decoded_string() == "a\nb"

    def test_empty_string(self, engine):
        assert _first(engine, 'x = "";', "string").decoded_string() == ""

    def test_template_keeps_substitutions_raw(self, engine):
        node = _first(engine, "x = `/api/${id}/items\\t`;", "template_string")
        assert node.decoded_string() == "/api/${id}/items\t"

    def test_template_parts(self, engine):
        node = _first(engine, "x = `a${b}c`;", "template_string")
        parts = template_parts(node)
        assert parts[0] == "a"
        assert isinstance(parts[1], Node)
        assert parts[1].type == "template_substitution"
        assert parts[2] == "c"

    def test_non_literal_decodes_to_text(self, engine):
        node = _first(engine, "foo.bar;", "member_expression")
        assert node.decoded_string() == "foo.bar"

    def test_collapsed_string(self, engine):
        node = _first(engine, 'x = "/a/" + id;', "binary_expression")
        assert node.collapsed_string() == "/a/EXPR"


# ===========================================================================
# Object literals
# ===========================================================================


class TestAsMap:
    """Test object literal flattening."""

    def test_keys_and_values(self, engine):
        code = "x = {a: \"1\", 'b': 'two', c: foo(), d, [\"e\"]: `five`, 6: 7};"
        node = _first(engine, code, "object")
        assert node.as_map() == {
            "a": "1",
            "b": "two",
            "c": "foo()",
            "d": "d",
            "e": "five",
            "6": "7",
        }

    def test_nested_object_rendered_as_text(self, engine):
        node = _first(engine, "x = {outer: {inner: 1}};", "object")
        assert node.as_map() == {"outer": "{inner: 1}"}

    def test_non_object_is_empty(self, engine):
        assert _first(engine, "x = [1, 2];", "array").as_map() == {}

    def test_object_value(self, engine):
        node = _first(engine, 'x = {url: "/a", "method": "POST"};', "object")
        assert node.object_value("method").decoded_string() == "POST"
        assert node.object_value("missing") is None


# ===========================================================================
# Queries and traversal
# ===========================================================================


class TestQueries:
    """Test the generic structural query interface."""

    def test_query_document_order(self, engine):
        ast = engine.parse('a("one"); b("two"); c("three");')
        values = [node.decoded_string() for node in engine.query(ast, "(string) @s")]
        assert values == ["one", "two", "three"]

    def test_query_outer_capture_first(self, engine):
        """Captures starting at the same byte list the outer node first."""
        ast = engine.parse("a.b.c;")
        nodes = engine.query(ast, "(member_expression) @m")
        assert [node.text for node in nodes] == ["a.b.c", "a.b"]

    def test_invalid_query_raises(self, engine):
        ast = engine.parse("x;")
        with pytest.raises(QueryError) as exc_info:
            engine.query(ast, "(no_such_node_type) @x")
        assert exc_info.value.pattern == "(no_such_node_type) @x"

    def test_query_with_predicate(self, engine):
        ast = engine.parse("fetch('/a'); other('/b');")
        pattern = '(call_expression function: (identifier) @fn (#eq? @fn "fetch"))'
        nodes = engine.query(ast, pattern)
        assert [node.text for node in nodes] == ["fetch"]

    def test_query_typescript(self, engine):
        ast = engine.parse('const u: string = "/ts";', language="typescript")
        assert [n.decoded_string() for n in engine.query(ast, "(string) @s")] == ["/ts"]


class TestTraversal:
    """Test explicit-stack walking and node navigation."""

    def test_iter_nodes_preorder(self, engine):
        ast = engine.parse("a + b;")
        types = [node.type for node in ast.iter_nodes()]
        assert types[0] == "program"
        assert types.index("binary_expression") < types.index("identifier")

    def test_walk_skips_subtrees(self, engine):
        ast = engine.parse("f(g(h()));")
        seen = []

        def visitor(node, depth):
            seen.append(node.type)
            if node.type == "arguments":
                return False
            return None

        ast.walk(visitor)
        assert seen.count("call_expression") == 1

    def test_deep_nesting_walks_without_recursion(self, engine):
        code = "x = " + "(" * 2000 + "1" + ")" * 2000 + ";"
        ast = engine.parse(code)
        assert sum(1 for _ in ast.iter_nodes()) > 2000

    def test_node_equality_and_hash(self, engine):
        ast = engine.parse('x = "a";')
        first = engine.query(ast, "(string) @s")[0]
        second = engine.query(ast, "(string) @t")[0]
        assert first == second
        assert hash(first) == hash(second)
        assert first.parent().type == "assignment_expression"

    def test_arguments(self, engine):
        node = _first(engine, "f(1, /* c */ 'two');", "call_expression")
        assert [arg.type for arg in node.arguments()] == ["number", "string"]

    def test_line_numbers(self, engine):
        node = _first(engine, "\n\nfoo();", "call_expression")
        assert node.line == 3
        assert node.column == 0
