"""Analyzer: parse one source unit and run matchers over it.

An ``Analyzer`` owns a single parse tree and an immutable ``MatcherSet``.
URL matchers run during one pre-order pass over the tree, dispatched by
node type; secret matchers each run their own structural query. Both
passes are read-only, so repeated calls return equal results.
"""

from __future__ import annotations

import logging

from .ast_engine import ASTEngine, Node, ParsedAST
from .config import AnalyzerSettings
from .core.exceptions import MatcherError
from .enrichment import enrich
from .logging_config import get_logger
from .matchers import (
    EMPTY_MATCHERS,
    MatcherSet,
    SecretMatcher,
    SecretMatcherFn,
    TriggerKind,
    URLMatcher,
    URLMatcherFn,
)
from .models import URL, Secret
from .secret_matchers import SECRET_MATCHERS
from .url_matchers import URL_MATCHERS

logger = logging.getLogger(__name__)
findings_logger = get_logger()

DEFAULT_MATCHERS = MatcherSet(URL_MATCHERS, SECRET_MATCHERS)


class Analyzer:
    """Extract URLs and secrets from one JavaScript/TypeScript source unit.

    Example::

        analyzer = Analyzer('fetch("/api/users?id=" + id)')
        for url in analyzer.get_urls():
            print(url.method, url.url)
    """

    def __init__(
        self,
        source: str | bytes,
        *,
        language: str | None = None,
        matchers: MatcherSet | None = None,
        settings: AnalyzerSettings | None = None,
        engine: ASTEngine | None = None,
    ) -> None:
        """
        Parse *source* and prepare the matcher set.

        Args:
            source: Full file contents, as text or UTF-8 bytes
            language: Grammar override; defaults to ``settings.language``
            matchers: Matchers to run; defaults to the built-in set unless
                ``settings.include_default_matchers`` is false
            settings: Analyzer settings; defaults to ``AnalyzerSettings()``
            engine: Parsing engine to reuse; a fresh one by default

        Raises:
            UnsupportedLanguageError: If the language is not supported
            ParseError: If the parser produces no tree
        """
        self.settings = settings or AnalyzerSettings()
        self.language = language or self.settings.language
        if matchers is None:
            matchers = (
                DEFAULT_MATCHERS if self.settings.include_default_matchers else EMPTY_MATCHERS
            )
        self._matchers = matchers
        self._engine = engine or ASTEngine()
        self._ast = self._engine.parse(
            source,
            language=self.language,
            max_expression_depth=self.settings.max_expression_depth,
        )
        logger.debug(
            "Analyzer ready: %d URL matchers, %d secret matchers",
            len(self._matchers.url_matchers),
            len(self._matchers.secret_matchers),
        )

    @property
    def matchers(self) -> MatcherSet:
        return self._matchers

    @property
    def ast(self) -> ParsedAST:
        return self._ast

    @property
    def root(self) -> Node:
        return self._ast.root

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_url_matcher(
        self,
        trigger: URLMatcher | TriggerKind | str,
        fn: URLMatcherFn | None = None,
        name: str | None = None,
    ) -> URLMatcher:
        """
        Append a URL matcher after those already registered.

        Accepts either a ready ``URLMatcher`` or a trigger plus function.

        Raises:
            InvalidMatcherError: For an unknown trigger or non-callable fn
        """
        if isinstance(trigger, URLMatcher):
            matcher = trigger
        else:
            matcher = URLMatcher(trigger, fn, name or "")
        self._matchers = self._matchers.with_url_matcher(matcher)
        return matcher

    def add_secret_matcher(
        self,
        query: SecretMatcher | str,
        fn: SecretMatcherFn | None = None,
        name: str | None = None,
    ) -> SecretMatcher:
        """
        Append a secret matcher after those already registered.

        The query is compiled on first use, so an invalid pattern raises
        ``QueryError`` from ``get_secrets()``.

        Raises:
            InvalidMatcherError: For an empty query or non-callable fn
        """
        if isinstance(query, SecretMatcher):
            matcher = query
        else:
            matcher = SecretMatcher(query, fn, name or "")
        self._matchers = self._matchers.with_secret_matcher(matcher)
        return matcher

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def get_urls(self) -> list[URL]:
        """
        Run every URL matcher over the tree.

        Returns:
            Enriched findings in document order; matchers firing on the
            same node report in registration order. Findings of matchers
            flagged ``defer_to_enclosing`` are dropped when an enclosing
            node already produced the same URL

        Raises:
            MatcherError: If a matcher raises
        """
        by_type: dict[str, list[URLMatcher]] = {}
        for matcher in self._matchers.url_matchers:
            for node_type in matcher.trigger.node_types:
                by_type.setdefault(node_type, []).append(matcher)

        urls: list[URL] = []
        # (start_byte, end_byte, url) of findings that can cover a deferring
        # matcher; pre-order keeps enclosing nodes ahead of their children
        reported: list[tuple[int, int, str]] = []
        if by_type:
            for ts_node in self._ast.iter_nodes():
                matchers = by_type.get(ts_node.type)
                if not matchers:
                    continue
                node = self._ast.wrap(ts_node)
                while reported and reported[-1][1] <= node.start_byte:
                    reported.pop()
                for matcher in matchers:
                    url = self._run(matcher.name, matcher.fn, node, URL)
                    if url is None:
                        continue
                    url = enrich(url, node)
                    if not matcher.defer_to_enclosing:
                        reported.append((node.start_byte, node.end_byte, url.url))
                    elif _reported_by_enclosing(reported, node, url.url):
                        logger.debug(
                            "Matcher %r deferred to an enclosing finding for %s",
                            matcher.name,
                            url.url,
                        )
                        continue
                    urls.append(url)

        findings_logger.debug(
            "Extracted %d URLs",
            len(urls),
            extra={
                "event": "extraction_complete",
                "kind": "url",
                "count": len(urls),
                "language": self.language,
            },
        )
        return urls

    def get_secrets(self) -> list[Secret]:
        """
        Run every secret matcher's query and matcher function.

        Returns:
            Findings ordered by the position of the captured node; findings
            on the same node keep matcher registration order

        Raises:
            QueryError: If a matcher's query does not compile
            MatcherError: If a matcher raises
        """
        found: list[tuple[tuple[int, int], Secret]] = []
        for matcher in self._matchers.secret_matchers:
            for node in self._engine.query(self._ast, matcher.query):
                secret = self._run(matcher.name, matcher.fn, node, Secret)
                if secret is not None:
                    found.append(((node.start_byte, -node.end_byte), secret))

        found.sort(key=lambda item: item[0])
        secrets = [secret for _position, secret in found]

        findings_logger.debug(
            "Extracted %d secrets",
            len(secrets),
            extra={
                "event": "extraction_complete",
                "kind": "secret",
                "count": len(secrets),
                "language": self.language,
            },
        )
        return secrets

    def query(self, pattern: str) -> list[Node]:
        """
        Run a tree-sitter query against the parsed source.

        Raises:
            QueryError: If *pattern* is invalid
        """
        return self._engine.query(self._ast, pattern)

    def _run(self, name, fn, node, expected):
        try:
            result = fn(node)
        except Exception as e:
            findings_logger.error(
                "Matcher %s failed at line %d",
                name,
                node.line,
                extra={"event": "matcher_error", "matcher": name, "error": str(e)},
            )
            raise MatcherError(
                f"Matcher {name!r} failed on {node.type} at line {node.line}: {e}",
                matcher_name=name,
            ) from e

        if result is not None and not isinstance(result, expected):
            raise MatcherError(
                f"Matcher {name!r} returned {type(result).__name__}, "
                f"expected {expected.__name__} or None",
                matcher_name=name,
            )
        return result


def _reported_by_enclosing(reported: list[tuple[int, int, str]], node: Node, url: str) -> bool:
    """Whether a finding on a node strictly enclosing *node* has this URL."""
    start, end = node.start_byte, node.end_byte
    return any(
        found == url and outer_start <= start and end <= outer_end
        and (outer_start, outer_end) != (start, end)
        for outer_start, outer_end, found in reported
    )
