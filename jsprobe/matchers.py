"""Matcher definitions for URL and secret extraction.

A matcher pairs a trigger with a pure function from a ``Node`` to an
optional finding. URL matchers trigger on a closed set of node kinds;
secret matchers trigger on free-form tree-sitter query patterns, since a
query can select arbitrary subtrees.

Matcher sets are immutable values. The analyzer copies one at construction
and callers extend their own copy, so no registry state is shared between
analyzers or threads.

Query syntax reference (secret matchers):
- (node_type) matches a node by type
- field: (child) matches a named field
- @capture_name captures a node; the matcher runs once per capture
- (#eq? @cap "value") / (#match? @cap "regex") filter captures
- [alt1 alt2] matches alternatives
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .ast_engine import Node
from .core.exceptions import InvalidMatcherError
from .models import URL, Secret

URLMatcherFn = Callable[[Node], URL | None]
SecretMatcherFn = Callable[[Node], Secret | None]


class TriggerKind(str, Enum):
    """Node kinds a URL matcher can trigger on."""

    STRING = "string"
    ASSIGNMENT = "assignment_expression"
    CALL = "call_expression"

    @property
    def node_types(self) -> frozenset[str]:
        """Tree-sitter node types this trigger fires on."""
        if self is TriggerKind.STRING:
            return frozenset({"string", "template_string"})
        return frozenset({self.value})

    @classmethod
    def coerce(cls, trigger: TriggerKind | str) -> TriggerKind:
        """Return *trigger* as a ``TriggerKind``.

        Raises:
            InvalidMatcherError: If *trigger* names no known trigger.
        """
        try:
            return cls(trigger)
        except ValueError:
            valid = ", ".join(kind.value for kind in cls)
            raise InvalidMatcherError(
                f"Unknown URL matcher trigger: {trigger!r}. Valid triggers: {valid}"
            ) from None


@dataclass(frozen=True)
class URLMatcher:
    """A URL matcher definition.

    Attributes:
        trigger: Node kind the matcher runs on.
        fn: Function returning a ``URL`` or ``None`` when the node does not
            apply.
        name: Identifier used in logs and errors.
        defer_to_enclosing: Drop this matcher's finding when another
            matcher of the same set reported the same URL on an enclosing
            node, e.g. the literal inside ``fetch("/a")``.
    """

    trigger: TriggerKind
    fn: URLMatcherFn
    name: str = ""
    defer_to_enclosing: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "trigger", TriggerKind.coerce(self.trigger))
        if not callable(self.fn):
            raise InvalidMatcherError(f"URL matcher function is not callable: {self.fn!r}")
        if not self.name:
            object.__setattr__(self, "name", _function_name(self.fn))


@dataclass(frozen=True)
class SecretMatcher:
    """A secret matcher definition.

    Attributes:
        query: Tree-sitter S-expression selecting candidate nodes.
        fn: Function returning a ``Secret`` or ``None`` for each captured
            node.
        name: Identifier used in logs and errors.
    """

    query: str
    fn: SecretMatcherFn
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.query, str) or not self.query.strip():
            raise InvalidMatcherError("Secret matcher query must be a non-empty string")
        if not callable(self.fn):
            raise InvalidMatcherError(f"Secret matcher function is not callable: {self.fn!r}")
        if not self.name:
            object.__setattr__(self, "name", _function_name(self.fn))


@dataclass(frozen=True)
class MatcherSet:
    """An immutable, ordered collection of URL and secret matchers."""

    url_matchers: tuple[URLMatcher, ...] = field(default_factory=tuple)
    secret_matchers: tuple[SecretMatcher, ...] = field(default_factory=tuple)

    def with_url_matcher(self, matcher: URLMatcher) -> MatcherSet:
        return MatcherSet(self.url_matchers + (matcher,), self.secret_matchers)

    def with_secret_matcher(self, matcher: SecretMatcher) -> MatcherSet:
        return MatcherSet(self.url_matchers, self.secret_matchers + (matcher,))

    def merge(self, other: MatcherSet) -> MatcherSet:
        """Return a set running this set's matchers, then *other*'s."""
        return MatcherSet(
            self.url_matchers + other.url_matchers,
            self.secret_matchers + other.secret_matchers,
        )


EMPTY_MATCHERS = MatcherSet()


def _function_name(fn: Callable[..., object]) -> str:
    return getattr(fn, "__name__", None) or type(fn).__name__
