"""Best-effort string evaluation of JavaScript expressions.

The evaluator reduces an expression subtree to the string it would most
likely produce at runtime. Literal parts are kept verbatim; every
sub-expression whose value cannot be known statically (identifiers, member
access, calls, functions, ...) is replaced by one ``EXPR`` placeholder, so
evaluation always yields *some* string::

    "/login?redirect=" + redirect + "&method=oauth"
    -> "/login?redirect=EXPR&method=oauth"

Left-associative ``+`` chains, which minifiers produce in the thousands,
are unwound with a loop; only genuine nesting (parentheses, template
substitutions) counts against the depth limit.
"""

from __future__ import annotations

import logging

from .ast_engine import Node, template_parts
from .constants import DEFAULT_MAX_EXPRESSION_DEPTH, EXPR

logger = logging.getLogger(__name__)

# Nodes whose value is their single inner expression
_WRAPPER_TYPES = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
})

# Literals whose source text is their string value inside a concatenation
_TEXT_LITERAL_TYPES = frozenset({"number", "true", "false", "null"})

_STRING_TYPES = frozenset({"string", "template_string"})


def _is_concat(node: Node) -> bool:
    if node.type != "binary_expression":
        return False
    operator = node.child_by_field_name("operator")
    return operator is not None and operator.text == "+"


def _unwrap(node: Node) -> Node | None:
    inner = node.named_children()
    return inner[0] if inner else None


def _operands(node: Node) -> list[Node]:
    """Flatten a left-associative ``+`` chain into its operands in order."""
    rights: list[Node] = []
    current: Node | None = node
    while current is not None and _is_concat(current):
        right = current.child_by_field_name("right")
        if right is not None:
            rights.append(right)
        current = current.child_by_field_name("left")

    operands: list[Node] = [current] if current is not None else []
    operands.extend(reversed(rights))
    return operands


class ExpressionEvaluator:
    """Collapse expression nodes into strings with ``EXPR`` placeholders.

    Args:
        max_depth: Maximum nesting followed before a subtree is collapsed
            to a single placeholder.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_EXPRESSION_DEPTH) -> None:
        self.max_depth = max_depth

    def evaluate(self, node: Node) -> str:
        """Return the approximate string value of *node*. Never raises."""
        return self._collapse(node, 0)

    def is_string_like(self, node: Node) -> bool:
        """Whether *node* evaluates to a string in JavaScript semantics.

        True for string and template literals, wrappers around a
        string-like expression, and ``+`` chains with at least one
        string-like operand.
        """
        return self._is_string_like(node, 0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_string_like(self, node: Node, depth: int) -> bool:
        if depth > self.max_depth:
            return False
        if node.type in _STRING_TYPES:
            return True
        if node.type in _WRAPPER_TYPES:
            inner = _unwrap(node)
            return inner is not None and self._is_string_like(inner, depth + 1)
        if _is_concat(node):
            return any(
                self._is_string_like(operand, depth + 1)
                for operand in _operands(node)
            )
        return False

    def _collapse(self, node: Node, depth: int) -> str:
        if depth > self.max_depth:
            logger.debug(
                "Expression nesting exceeds %d at byte %d; using placeholder",
                self.max_depth,
                node.start_byte,
            )
            return EXPR

        kind = node.type
        if kind == "string":
            return node.decoded_string()
        if kind == "template_string":
            return self._collapse_template(node, depth)
        if kind in _WRAPPER_TYPES:
            inner = _unwrap(node)
            return self._collapse(inner, depth + 1) if inner is not None else EXPR
        if _is_concat(node):
            return self._collapse_concat(node, depth)
        return EXPR

    def _collapse_template(self, node: Node, depth: int) -> str:
        parts: list[str] = []
        for part in template_parts(node):
            if isinstance(part, str):
                parts.append(part)
                continue
            inner = _unwrap(part)
            parts.append(self._collapse(inner, depth + 1) if inner is not None else EXPR)
        return "".join(parts)

    def _collapse_concat(self, node: Node, depth: int) -> str:
        operands = _operands(node)
        first_string = next(
            (
                index
                for index, operand in enumerate(operands)
                if self._is_string_like(operand, depth + 1)
            ),
            None,
        )
        if first_string is None:
            # numeric addition or unknown operands: one unknown value
            return EXPR

        parts: list[str] = []
        if first_string == 1:
            parts.append(self._operand_text(operands[0], depth))
        elif first_string > 1:
            # operands before the first string are summed numerically first
            parts.append(EXPR)

        for operand in operands[first_string:]:
            parts.append(self._operand_text(operand, depth))
        return "".join(parts)

    def _operand_text(self, operand: Node, depth: int) -> str:
        if operand.type in _TEXT_LITERAL_TYPES:
            return operand.text
        return self._collapse(operand, depth + 1)


def collapse(node: Node, max_depth: int | None = None) -> str:
    """Evaluate *node* with the depth limit recorded on its tree."""
    if max_depth is None:
        max_depth = node.ast.max_expression_depth
    return ExpressionEvaluator(max_depth).evaluate(node)
