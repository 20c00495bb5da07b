"""Static extraction of URLs and secrets from JavaScript and TypeScript.

Source is parsed with tree-sitter; pluggable matchers inspect the tree and
report endpoints (with query/body parameters, method and headers) and
credential-like values. Anything that cannot be resolved statically is
rendered as the ``EXPR`` placeholder.

Quick start::

    from jsprobe import Analyzer

    analyzer = Analyzer(open("bundle.js").read())
    for url in analyzer.get_urls():
        print(url.to_dict())
    for secret in analyzer.get_secrets():
        print(secret.kind, secret.severity)
"""

from .analyzer import DEFAULT_MATCHERS, Analyzer
from .ast_engine import ASTEngine, Node, ParsedAST
from .config import AnalyzerSettings
from .constants import EXPR
from .core.exceptions import (
    InvalidConfigError,
    InvalidMatcherError,
    JSProbeError,
    MatcherError,
    ParseError,
    QueryError,
    UnsupportedLanguageError,
)
from .evaluator import ExpressionEvaluator, collapse
from .matchers import EMPTY_MATCHERS, MatcherSet, SecretMatcher, TriggerKind, URLMatcher
from .models import URL, Secret, Severity

__all__ = [
    "ASTEngine",
    "Analyzer",
    "AnalyzerSettings",
    "DEFAULT_MATCHERS",
    "EMPTY_MATCHERS",
    "EXPR",
    "ExpressionEvaluator",
    "InvalidConfigError",
    "InvalidMatcherError",
    "JSProbeError",
    "MatcherError",
    "MatcherSet",
    "Node",
    "ParseError",
    "ParsedAST",
    "QueryError",
    "Secret",
    "SecretMatcher",
    "Severity",
    "TriggerKind",
    "URL",
    "URLMatcher",
    "UnsupportedLanguageError",
    "collapse",
]
