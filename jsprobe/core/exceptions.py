"""Custom exception hierarchy for jsprobe.

A matcher returning ``None`` and an unresolved sub-expression rendered as
``EXPR`` are normal outcomes, not errors, and have no exception here.
"""


class JSProbeError(Exception):
    """Base exception for all jsprobe errors.

    All custom exceptions inherit from this class so callers iterating many
    source units can isolate one unit's failure with a single except clause.
    """
    pass


# =============================================================================
# Parsing Errors
# =============================================================================

class ParseError(JSProbeError):
    """The parser could not produce any tree for a source unit."""

    def __init__(self, message: str, language: str | None = None):
        super().__init__(message)
        self.language = language


class UnsupportedLanguageError(JSProbeError, ValueError):
    """Requested grammar is not one of the supported languages."""
    pass


class QueryError(JSProbeError):
    """A structural query pattern failed to compile against the grammar."""

    def __init__(self, message: str, pattern: str | None = None):
        super().__init__(message)
        self.pattern = pattern


# =============================================================================
# Matcher Errors
# =============================================================================

class InvalidMatcherError(JSProbeError, ValueError):
    """Matcher registration with an unknown trigger, bad query or non-callable."""
    pass


class MatcherError(JSProbeError):
    """A matcher function raised while inspecting a node."""

    def __init__(self, message: str, matcher_name: str | None = None):
        super().__init__(message)
        self.matcher_name = matcher_name


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(JSProbeError):
    """Base exception for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration values are invalid or malformed."""
    pass
