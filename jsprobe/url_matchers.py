"""Built-in URL matchers for JavaScript navigation and request idioms.

Each matcher is a pure function from a trigger node to an optional
``URL``. Matchers never depend on each other's results; shared
classification (``classify_call``, ``is_navigation_target``) is plain
syntax inspection.

Covered idioms (type tags in quotes):

- URL-shaped string and template literals, including concatenations
  (``"stringLiteral"``)
- ``location = ...`` / ``location.href = ...`` (``"locationAssignment"``)
- ``location.replace()`` / ``location.assign()``
- ``window.open()``
- ``fetch(url, init)``
- ``xhr.open(method, url)`` (``"XMLHttpRequest.open"``)
- jQuery ``$.get``, ``$.getJSON``, ``$.getScript``, ``$.post``, ``$.ajax``
- axios ``axios(config)``, ``axios.request(config)``, ``axios.<verb>()``
- ``navigator.sendBeacon()``
"""

from __future__ import annotations

import re

from .ast_engine import Node
from .constants import (
    EXPR,
    HTTP_METHODS,
    JQUERY_NAMES,
    LOCATION_OWNERS,
    MAX_URL_LENGTH,
    WINDOW_OWNERS,
)
from .enrichment import body_params, headers_from, infer_method, unique
from .evaluator import ExpressionEvaluator, collapse
from .matchers import TriggerKind, URLMatcher
from .models import URL

# ---------------------------------------------------------------------------
# URL shape heuristics
# ---------------------------------------------------------------------------

_URL_CHARS_RE = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")

_SCHEME_RE = re.compile(r"^(?:https?|wss?|ftp)://[^/?#]", re.IGNORECASE)

_PROTOCOL_RELATIVE_RE = re.compile(
    r"^//(?:(?:[A-Za-z0-9-]+\.)+[A-Za-z]{2,}|localhost|" + EXPR + r")(?::\d+)?(?:[/?#]|$)"
)

_RELATIVE_FILE_RE = re.compile(
    r"^[A-Za-z0-9_\-.~%]+(?:/[A-Za-z0-9_\-.~%]+)*"
    r"\.(?:php|asp|aspx|jsp|json|action|do|cgi|html?|xml)(?:[?#].*)?$",
    re.IGNORECASE,
)


def maybe_url(value: str) -> bool:
    """Heuristic check whether *value* looks like a URL or path.

    Accepts absolute ``http(s)``/``ws(s)``/``ftp`` URLs, protocol-relative
    ``//host`` URLs, paths starting with ``/``, ``./`` or ``../``,
    query-only strings such as ``?id=1``, paths behind an unknown base
    (``EXPR/users``) and bare relative paths ending in a server-side or
    data file extension. Anything with whitespace, quotes,
    angle brackets or backslashes is rejected, which also rules out prose,
    markup and regular expressions.

    Args:
        value: Candidate string, possibly containing ``EXPR`` placeholders.

    Returns:
        ``True`` if the value is URL-shaped.
    """
    if len(value) < 2 or len(value) > MAX_URL_LENGTH:
        return False
    if not _URL_CHARS_RE.match(value):
        return False

    if _SCHEME_RE.match(value):
        return True
    if value.startswith("//"):
        return bool(_PROTOCOL_RELATIVE_RE.match(value))
    if value.startswith(("/", "./", "../")):
        return any(char.isalnum() for char in value)
    if value.startswith("?"):
        return "=" in value
    if value.startswith(EXPR + "/") and not value.startswith(EXPR + "//"):
        # unknown base followed by a path: apiBase + "/users"
        return maybe_url(value[len(EXPR):])
    return bool(_RELATIVE_FILE_RE.match(value))


# ---------------------------------------------------------------------------
# Syntax helpers
# ---------------------------------------------------------------------------

_WRAPPER_TYPES = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
})

_JQUERY_METHODS = frozenset({"get", "getJSON", "getScript", "post", "ajax"})

_AXIOS_VERBS = frozenset({"get", "delete", "head", "options", "post", "put", "patch"})

_AXIOS_DATA_VERBS = frozenset({"post", "put", "patch"})

_MODULE_LOADERS = frozenset({"require", "import"})


def _is_concat(node: Node) -> bool:
    if node.type != "binary_expression":
        return False
    operator = node.child_by_field_name("operator")
    return operator is not None and operator.text == "+"


def member_path(node: Node) -> list[str | None]:
    """Dotted name of a callee or assignment target, outermost name first.

    ``window["location"].href`` gives ``["window", "location", "href"]``.
    Segments that cannot be named statically (calls, computed keys that
    are not string literals) are ``None``. Babel's ``(0, fn)`` call idiom
    resolves to ``fn``.
    """
    parts: list[str | None] = []
    current: Node | None = node
    while current is not None:
        kind = current.type
        if kind in ("identifier", "this", "property_identifier"):
            parts.append(current.text)
            break
        if kind == "member_expression":
            prop = current.child_by_field_name("property")
            parts.append(prop.text if prop is not None else None)
            current = current.child_by_field_name("object")
            continue
        if kind == "subscript_expression":
            index = current.child_by_field_name("index")
            if index is not None and index.type == "string":
                parts.append(index.decoded_string())
            else:
                parts.append(None)
            current = current.child_by_field_name("object")
            continue
        if kind in ("parenthesized_expression", "sequence_expression"):
            inner = current.named_children()
            current = inner[-1] if inner else None
            continue
        parts.append(None)
        break
    parts.reverse()
    return parts


def _is_location_path(path: list[str | None]) -> bool:
    if path == ["location"]:
        return True
    return len(path) == 2 and path[0] in LOCATION_OWNERS and path[1] == "location"


def is_navigation_target(node: Node) -> bool:
    """Whether assigning to *node* navigates the current page."""
    path = member_path(node)
    if _is_location_path(path):
        return True
    return len(path) > 1 and path[-1] == "href" and _is_location_path(path[:-1])


def http_verb(node: Node | None) -> str | None:
    """Upper-cased HTTP method named by a string literal, if any."""
    if node is None or node.type not in ("string", "template_string"):
        return None
    verb = node.decoded_string().strip().upper()
    return verb if verb in HTTP_METHODS else None


def classify_call(node: Node) -> str | None:
    """Return the type tag of a recognised request/navigation call.

    Args:
        node: A ``call_expression`` node.

    Returns:
        A tag such as ``"fetch"`` or ``"$.post"``, or ``None`` when the
        call is not a known request or navigation idiom.
    """
    if node.type != "call_expression":
        return None
    callee = node.child_by_field_name("function")
    if callee is None:
        return None

    path = member_path(callee)
    if not path or path[-1] is None:
        return None
    name = path[-1]
    owner = path[:-1]

    if name in ("replace", "assign") and owner and _is_location_path(owner):
        return f"location.{name}"

    if name == "open":
        if not owner or (len(owner) == 1 and owner[0] in WINDOW_OWNERS):
            return "window.open"
        args = node.arguments()
        if len(args) >= 2 and http_verb(args[0]) is not None:
            return "XMLHttpRequest.open"
        return None

    if name == "fetch" and (not owner or (len(owner) == 1 and owner[0] in WINDOW_OWNERS)):
        return "fetch"

    if len(owner) == 1 and owner[0] in JQUERY_NAMES and name in _JQUERY_METHODS:
        return f"$.{name}"

    if not owner and name == "axios":
        return "axios"
    if owner == ["axios"]:
        if name == "request":
            return "axios"
        if name in _AXIOS_VERBS:
            return f"axios.{name}"

    if name == "sendBeacon" and owner and owner[-1] == "navigator":
        return "navigator.sendBeacon"

    return None


def _object_arg(args: list[Node], index: int) -> Node | None:
    if len(args) > index and args[index].type == "object":
        return args[index]
    return None


def _string_setting(settings: Node | None, *keys: str) -> str:
    if settings is None:
        return ""
    for key in keys:
        value = settings.object_value(key)
        if value is not None and value.type in ("string", "template_string"):
            return collapse(value)
    return ""


def _object_keys(node: Node | None) -> list[str]:
    if node is None or node.type != "object":
        return []
    return unique(node.as_map())


# ---------------------------------------------------------------------------
# String literals
# ---------------------------------------------------------------------------


def _has_string_operand(node: Node | None, evaluator: ExpressionEvaluator) -> bool:
    """Whether a ``+`` chain has a string-like operand, nearest first."""
    current = node
    while current is not None and _is_concat(current):
        right = current.child_by_field_name("right")
        if right is not None and evaluator.is_string_like(right):
            return True
        current = current.child_by_field_name("left")
    return current is not None and evaluator.is_string_like(current)


def _expression_root(node: Node) -> Node | None:
    """Climb from a literal to the outermost concatenation containing it.

    Returns ``None`` once the literal turns out not to be the first
    string-like part of that concatenation: it sits inside a template, or
    an earlier operand is already string-like. Later literals of a long
    chain stop after one step, so only the first one climbs to the top.
    """
    evaluator = ExpressionEvaluator(node.ast.max_expression_depth)
    current = node
    while True:
        parent = current.parent()
        if parent is None:
            return current
        if parent.type in ("template_substitution", "template_string"):
            return None
        if _is_concat(parent):
            left = parent.child_by_field_name("left")
            if left is not None and left != current and _has_string_operand(left, evaluator):
                return None
            current = parent
        elif parent.type in _WRAPPER_TYPES:
            current = parent
        else:
            return current


def _is_module_specifier(root: Node) -> bool:
    parent = root.parent()
    if parent is None:
        return False
    if parent.type in ("import_statement", "export_statement"):
        return True
    if parent.type == "arguments":
        call = parent.parent()
        if call is not None and call.type == "call_expression":
            callee = call.child_by_field_name("function")
            return callee is not None and callee.text in _MODULE_LOADERS
    return False


def match_string_literal(node: Node) -> URL | None:
    """URL-shaped string literals, with any concatenation collapsed.

    Only the first literal of a concatenation reports, with the value of
    the whole expression, so ``"/a?x=" + x + "&y=1"`` yields one finding.
    Registered with ``defer_to_enclosing``: the analyzer drops the finding
    when a call or assignment matcher in the same set already reported the
    same URL on an enclosing node.
    """
    root = _expression_root(node)
    if root is None or _is_module_specifier(root):
        return None

    value = collapse(root)
    if not maybe_url(value):
        return None
    return URL(url=value, type="stringLiteral", source=root.text)


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def match_location_assignment(node: Node) -> URL | None:
    """``location = x``, ``window.location.href = x`` and friends."""
    left = node.child_by_field_name("left")
    right = node.child_by_field_name("right")
    if left is None or right is None or not is_navigation_target(left):
        return None
    return URL(url=collapse(right), type="locationAssignment", source=right.text)


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------


def match_location_call(node: Node) -> URL | None:
    tag = classify_call(node)
    if tag not in ("location.replace", "location.assign"):
        return None
    args = node.arguments()
    if not args:
        return None
    return URL(url=collapse(args[0]), type=tag)


def match_window_open(node: Node) -> URL | None:
    if classify_call(node) != "window.open":
        return None
    args = node.arguments()
    if not args:
        return None
    return URL(url=collapse(args[0]), type="window.open")


def match_fetch(node: Node) -> URL | None:
    """``fetch(url, {method, headers, body})``, also via ``new Request()``."""
    if classify_call(node) != "fetch":
        return None
    args = node.arguments()
    if not args:
        return None

    target = args[0]
    init = _object_arg(args, 1)
    if target.type == "new_expression":
        constructor = target.child_by_field_name("constructor")
        request_args = target.arguments()
        if constructor is not None and constructor.text == "Request" and request_args:
            target = request_args[0]
            init = init or _object_arg(request_args, 1)

    headers = headers_from(init.object_value("headers")) if init is not None else {}
    return URL(
        url=collapse(target),
        method=_string_setting(init, "method").upper(),
        headers=headers,
        body_params=body_params(init.object_value("body")) if init is not None else [],
        type="fetch",
    )


def match_xhr_open(node: Node) -> URL | None:
    """``xhr.open("POST", url)`` on any receiver other than window."""
    if classify_call(node) != "XMLHttpRequest.open":
        return None
    args = node.arguments()
    return URL(
        url=collapse(args[1]),
        method=http_verb(args[0]) or "",
        type="XMLHttpRequest.open",
    )


def match_jquery(node: Node) -> URL | None:
    """jQuery ``$.get/$.getJSON/$.getScript/$.post/$.ajax`` calls."""
    tag = classify_call(node)
    if tag is None or not tag.startswith("$."):
        return None
    args = node.arguments()
    if not args:
        return None

    settings = _object_arg(args, 0)
    if settings is not None:
        url_node = settings.object_value("url")
    else:
        url_node = args[0]
        if tag == "$.ajax":
            settings = _object_arg(args, 1)
    if url_node is None:
        return None

    method = _string_setting(settings, "type", "method").upper() or infer_method(tag)
    if settings is not None:
        data = settings.object_value("data")
    else:
        data = args[1] if len(args) > 1 else None
        if data is not None and data.type in ("function_expression", "arrow_function", "identifier"):
            data = None

    params = body_params(data)
    is_get = method in ("GET", "HEAD")
    return URL(
        url=collapse(url_node),
        query_params=params if is_get else [],
        body_params=[] if is_get else params,
        method=method,
        headers=headers_from(settings.object_value("headers")) if settings is not None else {},
        content_type=_string_setting(settings, "contentType"),
        type=tag,
    )


def match_axios(node: Node) -> URL | None:
    """``axios(config)``, ``axios(url, config)``, ``axios.<verb>(url, ...)``."""
    tag = classify_call(node)
    if tag is None or not tag.startswith("axios"):
        return None
    args = node.arguments()
    if not args:
        return None

    data: Node | None = None
    if tag == "axios":
        config = _object_arg(args, 0)
        if config is not None:
            url_node = config.object_value("url")
        else:
            url_node = args[0]
            config = _object_arg(args, 1)
        if config is not None:
            data = config.object_value("data")
    else:
        url_node = args[0]
        verb = tag.split(".", 1)[1]
        if verb in _AXIOS_DATA_VERBS:
            data = args[1] if len(args) > 1 else None
            config = _object_arg(args, 2)
        else:
            config = _object_arg(args, 1)
    if url_node is None:
        return None

    return URL(
        url=collapse(url_node),
        query_params=_object_keys(config.object_value("params")) if config is not None else [],
        body_params=body_params(data),
        method=_string_setting(config, "method").upper(),
        headers=headers_from(config.object_value("headers")) if config is not None else {},
        type=tag,
    )


def match_send_beacon(node: Node) -> URL | None:
    if classify_call(node) != "navigator.sendBeacon":
        return None
    args = node.arguments()
    if not args:
        return None
    return URL(
        url=collapse(args[0]),
        body_params=body_params(args[1]) if len(args) > 1 else [],
        type="navigator.sendBeacon",
    )


URL_MATCHERS: tuple[URLMatcher, ...] = (
    URLMatcher(
        TriggerKind.STRING, match_string_literal, "stringLiteral", defer_to_enclosing=True
    ),
    URLMatcher(TriggerKind.ASSIGNMENT, match_location_assignment, "locationAssignment"),
    URLMatcher(TriggerKind.CALL, match_location_call, "locationCall"),
    URLMatcher(TriggerKind.CALL, match_window_open, "windowOpen"),
    URLMatcher(TriggerKind.CALL, match_fetch, "fetch"),
    URLMatcher(TriggerKind.CALL, match_xhr_open, "xhrOpen"),
    URLMatcher(TriggerKind.CALL, match_jquery, "jquery"),
    URLMatcher(TriggerKind.CALL, match_axios, "axios"),
    URLMatcher(TriggerKind.CALL, match_send_beacon, "sendBeacon"),
)
