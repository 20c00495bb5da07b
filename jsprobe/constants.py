"""Constants and configuration values for jsprobe.

This module centralizes magic numbers and token tables that are used
across the extraction engine for easier maintenance.
"""

# =============================================================================
# Expression Evaluation
# =============================================================================

# Placeholder for any sub-expression whose value cannot be known statically.
# Part of the output contract for downstream tooling.
EXPR = "EXPR"

# Maximum nesting the evaluator follows before collapsing a subtree to EXPR.
# Left-associative "+" chains are unwound without consuming depth.
DEFAULT_MAX_EXPRESSION_DEPTH = 128


# =============================================================================
# Parsing
# =============================================================================

DEFAULT_LANGUAGE = "javascript"

SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})


# =============================================================================
# URL Extraction
# =============================================================================

DEFAULT_HTTP_METHOD = "GET"

HTTP_METHODS = frozenset({
    "GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS",
    "CONNECT", "TRACE",
})

# Longest string considered for URL-shape checks (minified bundles
# carry huge inline blobs that are never endpoints)
MAX_URL_LENGTH = 4096

# Globals through which the current location is reachable
LOCATION_OWNERS = frozenset({
    "window", "document", "self", "top", "parent", "this", "globalThis",
})

# Globals that expose window.open()/fetch()
WINDOW_OWNERS = frozenset({"window", "self", "top", "parent", "globalThis"})

JQUERY_NAMES = frozenset({"$", "jQuery"})


# =============================================================================
# Secret Detection
# =============================================================================

# Minimum length / entropy for the name-based generic secret heuristic
GENERIC_SECRET_MIN_LENGTH = 20
GENERIC_SECRET_MIN_ENTROPY = 3.5

FIREBASE_CONFIG_KEYS = (
    "apiKey",
    "authDomain",
    "databaseURL",
    "projectId",
    "storageBucket",
    "messagingSenderId",
    "appId",
    "measurementId",
)

# Firebase config objects need apiKey plus this many other known keys
FIREBASE_MIN_KEYS = 3
