"""Post-processing that turns raw matched URLs into structured records.

Parameter names are extracted, never values: values are frequently the
``EXPR`` placeholder or only partially known.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from urllib.parse import unquote

from .ast_engine import Node
from .constants import DEFAULT_HTTP_METHOD, EXPR, HTTP_METHODS
from .evaluator import ExpressionEvaluator, collapse
from .models import URL

logger = logging.getLogger(__name__)

# Type-tag verbs that are not HTTP method names themselves
_VERB_ALIASES: dict[str, str] = {
    "getjson": "GET",
    "getscript": "GET",
    "sendbeacon": "POST",
}

_BODY_WRAPPERS = frozenset({"URLSearchParams", "FormData"})


def unique(names: Iterable[str]) -> list[str]:
    """Drop empty and repeated names, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if not name or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return result


def params_from_query_string(query: str) -> list[str]:
    """Parameter names of an ``a=1&b=2`` style string.

    Names are percent-decoded only; a literal ``+`` stays a plus sign.
    """
    query = query.lstrip("?")
    names = [unquote(part.partition("=")[0]) for part in query.split("&")]
    return unique(name for name in names if name != EXPR)


def query_params(url: str) -> list[str]:
    """Extract query parameter names from a possibly partial URL.

    Args:
        url: URL or path, possibly containing ``EXPR`` placeholders.

    Returns:
        Unique parameter names in order of first appearance.
    """
    _path, separator, query = url.partition("?")
    if not separator:
        return []
    query = query.split("#", 1)[0]
    return params_from_query_string(query)


def _params_from_text(value: str) -> list[str]:
    stripped = value.strip()
    if stripped.startswith("{"):
        try:
            decoded = json.loads(stripped)
        except ValueError:
            return []
        if isinstance(decoded, dict):
            return unique(str(key) for key in decoded)
        return []
    if "=" in stripped:
        return params_from_query_string(stripped)
    return []


def _unwrap_parens(node: Node) -> Node:
    while node.type == "parenthesized_expression":
        inner = node.named_children()
        if not inner:
            break
        node = inner[0]
    return node


def body_params(node: Node | None) -> list[str]:
    """Extract request body parameter names from a body expression.

    Understands object literals, query strings, JSON text, and the
    ``JSON.stringify(...)`` / ``new URLSearchParams(...)`` /
    ``new FormData(...)`` wrappers around them. Anything else yields no
    names.
    """
    if node is None:
        return []
    node = _unwrap_parens(node)

    if node.type == "object":
        return unique(node.as_map())

    if ExpressionEvaluator(node.ast.max_expression_depth).is_string_like(node):
        return _params_from_text(collapse(node))

    if node.type == "call_expression":
        callee = node.child_by_field_name("function")
        args = node.arguments()
        if callee is not None and callee.text == "JSON.stringify" and args:
            return body_params(args[0])

    if node.type == "new_expression":
        constructor = node.child_by_field_name("constructor")
        args = node.arguments()
        if constructor is not None and constructor.text in _BODY_WRAPPERS and args:
            return body_params(args[0])

    return []


def headers_from(node: Node | None) -> dict[str, str]:
    """Header mapping from an object literal or ``new Headers({...})``."""
    if node is None:
        return {}
    node = _unwrap_parens(node)
    if node.type == "new_expression":
        constructor = node.child_by_field_name("constructor")
        args = node.arguments()
        if constructor is None or constructor.text != "Headers" or not args:
            return {}
        node = args[0]
    return node.as_map()


def content_type_from(headers: dict[str, str]) -> str:
    for name, value in headers.items():
        if name.lower() == "content-type":
            return value
    return ""


def infer_method(type_tag: str) -> str:
    """Infer the HTTP method named by a matcher type tag.

    ``"$.post"`` gives ``POST`` and ``"axios.delete"`` gives ``DELETE``;
    tags that name no verb fall back to ``GET``.
    """
    verb = type_tag.rsplit(".", 1)[-1]
    if verb.upper() in HTTP_METHODS:
        return verb.upper()
    return _VERB_ALIASES.get(verb.lower(), DEFAULT_HTTP_METHOD)


def enrich(url: URL, node: Node) -> URL:
    """Complete a matcher's URL record.

    Merges query parameters parsed from ``url.url`` with any the matcher
    supplied (URL order first), de-duplicates body parameters and fills in
    the method from the type tag, the content type from the headers and
    the source from the matched node.

    Args:
        url: The record returned by a matcher.
        node: The node the matcher fired on.

    Returns:
        A new, completed ``URL`` record.
    """
    return url.model_copy(
        update={
            "query_params": unique([*query_params(url.url), *url.query_params]),
            "body_params": unique(url.body_params),
            "method": (url.method or infer_method(url.type)).upper(),
            "content_type": url.content_type or content_type_from(url.headers),
            "source": url.source or node.text,
        }
    )
