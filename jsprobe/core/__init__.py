"""Core building blocks shared across jsprobe."""

from .exceptions import (
    ConfigurationError,
    InvalidConfigError,
    InvalidMatcherError,
    JSProbeError,
    MatcherError,
    ParseError,
    QueryError,
    UnsupportedLanguageError,
)

__all__ = [
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidMatcherError",
    "JSProbeError",
    "MatcherError",
    "ParseError",
    "QueryError",
    "UnsupportedLanguageError",
]
