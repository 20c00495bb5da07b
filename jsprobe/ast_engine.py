"""Core AST parsing engine for JavaScript and TypeScript extraction.

This module provides a high-level interface around tree-sitter for parsing
JS/TS source code into trees, walking them, running structural queries and
reading string values out of nodes. It is the foundation the expression
evaluator, the matchers and the analyzer build on.

Usage::

    engine = ASTEngine()
    ast = engine.parse('location.href = "/login?next=" + next;')
    for node in engine.query(ast, "(string) @str"):
        print(node.decoded_string())
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator

import tree_sitter as ts
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

from .constants import DEFAULT_LANGUAGE, DEFAULT_MAX_EXPRESSION_DEPTH, SUPPORTED_LANGUAGES
from .core.exceptions import ParseError, QueryError, UnsupportedLanguageError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# String decoding
# ---------------------------------------------------------------------------

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

_LINE_TERMINATORS = frozenset({"\n", "\r", "\r\n", "\u2028", "\u2029"})

_ESCAPE_RE = re.compile(
    r"\\("
    r"u\{[0-9A-Fa-f]+\}"
    r"|u[0-9A-Fa-f]{4}"
    r"|x[0-9A-Fa-f]{2}"
    r"|[0-3][0-7]{0,2}"
    r"|[4-7][0-7]?"
    r"|\r\n"
    r"|[\s\S]"
    r")"
)

_SURROGATE_RE = re.compile("[\ud800-\udfff]")

_QUOTES = ("'", '"', "`")


def _replace_escape(match: re.Match[str]) -> str:
    body = match.group(1)
    head = body[0]

    if body in _LINE_TERMINATORS:
        return ""
    if head in _SIMPLE_ESCAPES and len(body) == 1:
        return _SIMPLE_ESCAPES[head]
    if head == "u" and len(body) > 1:
        digits = body[2:-1] if body[1] == "{" else body[1:]
        code_point = int(digits, 16)
        if code_point > 0x10FFFF:
            return match.group(0)
        return chr(code_point)
    if head == "x" and len(body) == 3:
        return chr(int(body[1:], 16))
    if head.isdigit() and head not in "89":
        return chr(int(body, 8))
    # identity escape: \' \" \` \\ and anything else
    return body


def decode_escapes(text: str) -> str:
    """Resolve JavaScript string escape sequences in *text*.

    Handles the single-character escapes (``\\n``, ``\\t``, ``\\r``,
    ``\\b``, ``\\f``, ``\\v``), ``\\0`` and legacy octal escapes, ``\\xHH``,
    ``\\uHHHH`` and ``\\u{H...}``, line continuations and identity escapes.
    Surrogate pairs spelled as two ``\\u`` escapes are combined into one
    code point; lone surrogates become U+FFFD.

    Args:
        text: String body without its surrounding quotes.

    Returns:
        The decoded string value.
    """
    if "\\" not in text:
        return text

    decoded = _ESCAPE_RE.sub(_replace_escape, text)
    if _SURROGATE_RE.search(decoded):
        decoded = decoded.encode("utf-16-le", "surrogatepass").decode(
            "utf-16-le", errors="replace"
        )
    return decoded


def unquote(text: str) -> str:
    """Strip one layer of matching JS quotes from *text*, if present."""
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        return text[1:-1]
    if text and text[0] in _QUOTES:
        # unterminated literal in error-recovered trees
        return text[1:]
    return text


# ---------------------------------------------------------------------------
# ParsedAST wrapper
# ---------------------------------------------------------------------------


class ParsedAST:
    """Wrapper around a tree-sitter parse tree for one source unit.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source decoded as text.
        language: Language identifier (``"javascript"``, ``"typescript"``,
            or ``"tsx"``).
        max_expression_depth: Nesting limit used when collapsing
            expressions from this tree.
    """

    __slots__ = (
        "tree",
        "source_code",
        "language",
        "max_expression_depth",
        "_source_bytes",
    )

    def __init__(
        self,
        tree: ts.Tree,
        source_bytes: bytes,
        language: str,
        max_expression_depth: int = DEFAULT_MAX_EXPRESSION_DEPTH,
    ) -> None:
        self.tree = tree
        self.language = language
        self.max_expression_depth = max_expression_depth
        self._source_bytes = source_bytes
        self.source_code = source_bytes.decode("utf-8", errors="replace")

    @property
    def root_node(self) -> ts.Node:
        """Return the root node of the parse tree."""
        return self.tree.root_node

    @property
    def root(self) -> Node:
        """Return the root node wrapped as a ``Node``."""
        return Node(self.tree.root_node, self)

    @property
    def source_bytes(self) -> bytes:
        return self._source_bytes

    @property
    def has_errors(self) -> bool:
        """Return ``True`` if the tree contains any parse errors."""
        return self.tree.root_node.has_error

    def get_text(self, node: ts.Node) -> str:
        """Extract the source text spanned by *node*.

        Args:
            node: Any node within this parse tree.

        Returns:
            The corresponding source substring.
        """
        return self.get_range_text(node.start_byte, node.end_byte)

    def get_range_text(self, start_byte: int, end_byte: int) -> str:
        """Extract the source text between two byte offsets."""
        return self._source_bytes[start_byte:end_byte].decode(
            "utf-8", errors="replace"
        )

    def wrap(self, node: ts.Node) -> Node:
        return Node(node, self)

    def walk(self, visitor: Callable[[ts.Node, int], bool | None]) -> None:
        """Depth-first, pre-order walk of the AST using a visitor callback.

        The *visitor* is called with ``(node, depth)`` for every node.
        If the visitor returns ``False`` explicitly, the subtree rooted
        at that node is skipped. The walk keeps its own stack, so tree
        depth never touches the interpreter recursion limit.

        Args:
            visitor: Callable receiving ``(node, depth)``. Return ``False``
                to skip children.
        """
        stack: list[tuple[ts.Node, int]] = [(self.tree.root_node, 0)]
        while stack:
            node, depth = stack.pop()
            if visitor(node, depth) is False:
                continue
            for child in reversed(node.children):
                stack.append((child, depth + 1))

    def iter_nodes(self) -> Iterator[ts.Node]:
        """Yield every node of the tree in document (pre-order) order."""
        stack: list[ts.Node] = [self.tree.root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


# ---------------------------------------------------------------------------
# Node view
# ---------------------------------------------------------------------------


class Node:
    """Read-only view of one tree-sitter node and the source it came from.

    A ``Node`` is only valid while its ``ParsedAST`` is alive. Navigation
    methods return new ``Node`` views, or ``None`` when the requested
    child/parent does not exist.
    """

    __slots__ = ("_node", "_ast")

    def __init__(self, node: ts.Node, ast: ParsedAST) -> None:
        self._node = node
        self._ast = ast

    # -- identity -------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return (
            self._ast is other._ast
            and self._node.type == other._node.type
            and self._node.start_byte == other._node.start_byte
            and self._node.end_byte == other._node.end_byte
        )

    def __hash__(self) -> int:
        return hash((id(self._ast), self._node.type, self._node.start_byte, self._node.end_byte))

    def __repr__(self) -> str:
        return f"Node(type={self.type!r}, range=({self.start_byte}, {self.end_byte}))"

    # -- properties -----------------------------------------------------

    @property
    def type(self) -> str:
        return self._node.type

    @property
    def start_byte(self) -> int:
        return self._node.start_byte

    @property
    def end_byte(self) -> int:
        return self._node.end_byte

    @property
    def line(self) -> int:
        """1-based line number of the node start."""
        return self._node.start_point.row + 1

    @property
    def column(self) -> int:
        return self._node.start_point.column

    @property
    def is_named(self) -> bool:
        return self._node.is_named

    @property
    def has_error(self) -> bool:
        return self._node.has_error

    @property
    def text(self) -> str:
        """Raw source text of the node."""
        return self._ast.get_text(self._node)

    @property
    def ast(self) -> ParsedAST:
        return self._ast

    @property
    def ts_node(self) -> ts.Node:
        """The underlying tree-sitter node, for callers needing the raw API."""
        return self._node

    # -- navigation -----------------------------------------------------

    def parent(self) -> Node | None:
        parent = self._node.parent
        return Node(parent, self._ast) if parent is not None else None

    def children(self) -> list[Node]:
        return [Node(child, self._ast) for child in self._node.children]

    def named_children(self) -> list[Node]:
        """Named children, skipping punctuation and comments."""
        return [
            Node(child, self._ast)
            for child in self._node.named_children
            if child.type != "comment"
        ]

    def child_by_field_name(self, name: str) -> Node | None:
        child = self._node.child_by_field_name(name)
        return Node(child, self._ast) if child is not None else None

    def arguments(self) -> list[Node]:
        """Argument expressions of a call or ``new`` expression."""
        args = self.child_by_field_name("arguments")
        if args is None or args.type != "arguments":
            return []
        return args.named_children()

    # -- values ---------------------------------------------------------

    @property
    def is_string_literal(self) -> bool:
        return self._node.type in ("string", "template_string")

    def decoded_string(self) -> str:
        """Return the string value of a literal, or raw text otherwise.

        ``string`` nodes lose their quotes and have escapes resolved.
        ``template_string`` nodes have their literal chunks decoded while
        each ``${...}`` substitution is kept as written.
        """
        if self.type == "string":
            return decode_escapes(unquote(self.text))
        if self.type == "template_string":
            return "".join(
                part if isinstance(part, str) else part.text
                for part in template_parts(self)
            )
        return self.text

    def collapsed_string(self) -> str:
        """Evaluate this expression to a string with ``EXPR`` placeholders."""
        from .evaluator import ExpressionEvaluator

        return ExpressionEvaluator(self._ast.max_expression_depth).evaluate(self)

    def as_map(self) -> dict[str, str]:
        """Flatten an object literal into a key -> value mapping.

        Values that are string or template literals are decoded; anything
        else (nested objects, calls, identifiers) is rendered as raw source
        text. Non-object nodes give an empty mapping.
        """
        result: dict[str, str] = {}
        if self.type != "object":
            return result

        for child in self.named_children():
            if child.type == "pair":
                key = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                if key is None or value is None:
                    continue
                result[property_name(key)] = display_value(value)
            elif child.type == "shorthand_property_identifier":
                result[child.text] = child.text
        return result

    def object_value(self, key: str) -> Node | None:
        """Return the value node of property *key* in an object literal."""
        if self.type != "object":
            return None
        for child in self.named_children():
            if child.type != "pair":
                continue
            key_node = child.child_by_field_name("key")
            if key_node is not None and property_name(key_node) == key:
                return child.child_by_field_name("value")
        return None


def property_name(node: Node) -> str:
    """Name of a property key, member property or binding name."""
    if node.is_string_literal:
        return node.decoded_string()
    if node.type == "computed_property_name":
        inner = node.named_children()
        if inner and inner[0].is_string_literal:
            return inner[0].decoded_string()
    return node.text


def display_value(node: Node) -> str:
    """Human-readable value of *node* for context maps."""
    if node.is_string_literal:
        return node.decoded_string()
    return node.text


def template_parts(node: Node) -> list[str | Node]:
    """Split a template literal into decoded text chunks and substitutions.

    Literal chunks are taken from the byte gaps between substitutions, so
    the result does not depend on how the grammar version models
    fragments and escapes inside templates.

    Returns:
        Alternating ``str`` chunks and ``template_substitution`` nodes in
        source order.
    """
    text = node.text
    start = node.start_byte + 1
    end = node.end_byte - 1 if len(text) >= 2 and text.endswith("`") else node.end_byte

    parts: list[str | Node] = []
    position = start
    for child in node.named_children():
        if child.type != "template_substitution":
            continue
        if child.start_byte > position:
            parts.append(decode_escapes(node.ast.get_range_text(position, child.start_byte)))
        parts.append(child)
        position = child.end_byte
    if end > position:
        parts.append(decode_escapes(node.ast.get_range_text(position, end)))
    return parts


# ---------------------------------------------------------------------------
# ASTEngine
# ---------------------------------------------------------------------------


class ASTEngine:
    """Core AST parsing engine for JavaScript and TypeScript.

    Initialises tree-sitter ``Language`` objects lazily on first use and
    caches them, their parsers and compiled queries for the lifetime of the
    engine instance. An engine is not meant to be shared across threads;
    give each worker its own.

    Example::

        engine = ASTEngine()
        ast = engine.parse(source)
        for node in engine.query(ast, "(call_expression) @call"):
            print(node.text)
    """

    def __init__(self) -> None:
        self._languages: dict[str, ts.Language] = {}
        self._parsers: dict[str, ts.Parser] = {}
        self._queries: dict[tuple[str, str], ts.Query] = {}

    # ------------------------------------------------------------------
    # Language / parser initialisation
    # ------------------------------------------------------------------

    def _get_language(self, language: str) -> ts.Language:
        """Return (and cache) the tree-sitter ``Language`` for *language*.

        Args:
            language: One of ``"javascript"``, ``"typescript"``, ``"tsx"``.

        Raises:
            UnsupportedLanguageError: If *language* is not supported.
        """
        if language not in SUPPORTED_LANGUAGES:
            raise UnsupportedLanguageError(
                f"Unsupported language: {language!r}. "
                f"Supported: {', '.join(sorted(SUPPORTED_LANGUAGES))}"
            )

        if language not in self._languages:
            if language == "javascript":
                self._languages[language] = ts.Language(ts_js.language())
            elif language == "typescript":
                self._languages[language] = ts.Language(
                    ts_ts.language_typescript()
                )
            else:  # tsx
                self._languages[language] = ts.Language(
                    ts_ts.language_tsx()
                )

        return self._languages[language]

    def _get_parser(self, language: str) -> ts.Parser:
        """Return (and cache) a ``Parser`` configured for *language*."""
        if language not in self._parsers:
            lang = self._get_language(language)
            self._parsers[language] = ts.Parser(language=lang)
        return self._parsers[language]

    def _get_query(self, language: str, pattern: str) -> ts.Query:
        key = (language, pattern)
        if key not in self._queries:
            lang = self._get_language(language)
            try:
                self._queries[key] = ts.Query(lang, pattern)
            except ts.QueryError as exc:
                raise QueryError(
                    f"Invalid query pattern: {exc}", pattern=pattern
                ) from exc
        return self._queries[key]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(
        self,
        source: str | bytes,
        language: str = DEFAULT_LANGUAGE,
        max_expression_depth: int = DEFAULT_MAX_EXPRESSION_DEPTH,
    ) -> ParsedAST:
        """Parse *source* into a ``ParsedAST``.

        Syntax errors do not raise: tree-sitter recovers and returns a
        best-effort tree with ``ERROR`` nodes, which is what minified and
        truncated real-world bundles need.

        Args:
            source: The full file contents to parse, as text or UTF-8 bytes.
            language: One of ``"javascript"``, ``"typescript"``, or
                ``"tsx"``.
            max_expression_depth: Nesting limit recorded on the tree for
                expression evaluation.

        Returns:
            A ``ParsedAST`` wrapping the parse tree.

        Raises:
            UnsupportedLanguageError: If *language* is not supported.
            ParseError: If the parser fails to produce a tree.
        """
        source_bytes = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        parser = self._get_parser(language)

        try:
            tree = parser.parse(source_bytes)
        except (ValueError, RuntimeError) as exc:
            raise ParseError(
                f"Failed to parse {language} source: {exc}", language=language
            ) from exc
        if tree is None:
            raise ParseError(
                f"Parser returned no tree for {language} source", language=language
            )

        logger.debug(
            "Parsed %d bytes of %s (errors=%s)",
            len(source_bytes),
            language,
            tree.root_node.has_error,
        )
        return ParsedAST(
            tree=tree,
            source_bytes=source_bytes,
            language=language,
            max_expression_depth=max_expression_depth,
        )

    # ------------------------------------------------------------------
    # Generic query interface
    # ------------------------------------------------------------------

    def query(self, ast: ParsedAST, pattern: str) -> list[Node]:
        """Execute a tree-sitter S-expression *pattern* against *ast*.

        Args:
            ast: A previously parsed AST.
            pattern: A tree-sitter query string in S-expression syntax.
                See https://tree-sitter.github.io/tree-sitter/using-parsers/queries
                for the full syntax reference.

        Returns:
            One ``Node`` per capture, in document order. Captures starting
            at the same byte are ordered outer node first.

        Raises:
            QueryError: If *pattern* is syntactically invalid.
        """
        query_obj = self._get_query(ast.language, pattern)
        cursor = ts.QueryCursor(query_obj)
        captures = cursor.captures(ast.root_node)

        captured: list[ts.Node] = []
        for nodes in captures.values():
            captured.extend(nodes)
        captured.sort(key=lambda n: (n.start_byte, -n.end_byte))

        return [Node(node, ast) for node in captured]

    def find_nodes_by_type(
        self, ast: ParsedAST, node_type: str
    ) -> list[Node]:
        """Return all AST nodes matching *node_type*, in document order.

        Args:
            ast: A previously parsed AST.
            node_type: The tree-sitter node type string
                (e.g., ``"call_expression"``).

        Returns:
            A list of matching ``Node`` objects.
        """
        return [
            Node(node, ast) for node in ast.iter_nodes() if node.type == node_type
        ]
