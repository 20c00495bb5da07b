"""Built-in secret matchers for credential-like values in JavaScript.

Each matcher pairs a tree-sitter query with a self-contained predicate and
extraction function. Provider-specific matchers look at string literals;
the Firebase matcher looks at whole object literals; the generic matcher
looks at name/value bindings whose name suggests a credential.

Every finding's ``context`` is the enclosing object literal rendered with
``Node.as_map()``, or empty when the value is not inside one.
"""

from __future__ import annotations

import math
import re
from collections import Counter

from .ast_engine import Node, property_name
from .constants import (
    FIREBASE_CONFIG_KEYS,
    FIREBASE_MIN_KEYS,
    GENERIC_SECRET_MIN_ENTROPY,
    GENERIC_SECRET_MIN_LENGTH,
)
from .matchers import SecretMatcher
from .models import Secret, Severity

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

STRING_QUERY = "[(string) (template_string)] @match"

OBJECT_QUERY = "(object) @match"

BINDING_QUERY = """
[
  (pair
    key: (_)
    value: [(string) (template_string)])
  (variable_declarator
    name: (identifier)
    value: [(string) (template_string)])
  (assignment_expression
    left: (_)
    right: [(string) (template_string)])
] @match
""".strip()

# ---------------------------------------------------------------------------
# Value shapes
# ---------------------------------------------------------------------------

_AWS_KEY_RE = re.compile(r"(?:AKIA|ASIA|AGPA|AIDA|AROA|ANPA|ANVA)[A-Z0-9]{16}")
_AWS_SECRET_RE = re.compile(r"[A-Za-z0-9/+=]{40}")
_GCP_KEY_RE = re.compile(r"AIza[0-9A-Za-z_\-]{35}")
_GITHUB_KEY_RE = re.compile(r"(?:ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9]{36}|github_pat_[A-Za-z0-9_]{22,}")
_SLACK_TOKEN_RE = re.compile(r"xox[abposr]-[A-Za-z0-9-]{10,}")
_SLACK_WEBHOOK_RE = re.compile(
    r"https://hooks\.slack\.com/services/T[A-Za-z0-9_]+/B[A-Za-z0-9_]+/[A-Za-z0-9_]+"
)
_STRIPE_KEY_RE = re.compile(r"(?:sk|rk)_live_[0-9A-Za-z]{20,}")
_PRIVATE_KEY_RE = re.compile(r"-----BEGIN (?:[A-Z0-9]+ )*PRIVATE KEY-----")
_JWT_RE = re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")

_KNOWN_SHAPES = (
    _AWS_KEY_RE,
    _GCP_KEY_RE,
    _GITHUB_KEY_RE,
    _SLACK_TOKEN_RE,
    _SLACK_WEBHOOK_RE,
    _STRIPE_KEY_RE,
    _JWT_RE,
)

_SECRET_NAME_RE = re.compile(
    r"secret|token|passw(?:or)?d|pwd|api[_-]?key|access[_-]?key"
    r"|private[_-]?key|auth[_-]?key|credential",
    re.IGNORECASE,
)


def shannon_entropy(value: str) -> float:
    """Shannon entropy of *value* in bits per character."""
    if not value:
        return 0.0
    length = len(value)
    return -sum(
        (count / length) * math.log2(count / length)
        for count in Counter(value).values()
    )


def _is_known_shape(value: str) -> bool:
    return any(shape.fullmatch(value) for shape in _KNOWN_SHAPES)


def _looks_random(value: str) -> bool:
    if len(value) < GENERIC_SECRET_MIN_LENGTH or any(char.isspace() for char in value):
        return False
    if "://" in value or value.startswith(("/", "./")):
        return False
    classes = sum((
        any(char.isupper() for char in value),
        any(char.islower() for char in value),
        any(char.isdigit() for char in value),
    ))
    if classes < 2 or not any(char.isdigit() for char in value):
        return False
    return shannon_entropy(value) >= GENERIC_SECRET_MIN_ENTROPY


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def literal_value(node: Node | None) -> str | None:
    """Decoded value of a string literal or substitution-free template."""
    if node is None:
        return None
    if node.type == "string":
        return node.decoded_string()
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children()):
            return None
        return node.decoded_string()
    return None


def enclosing_object(node: Node) -> Node | None:
    """The object literal *node* is a property value of, if any."""
    parent = node.parent()
    if parent is None or parent.type != "pair":
        return None
    if parent.child_by_field_name("value") != node:
        return None
    owner = parent.parent()
    return owner if owner is not None and owner.type == "object" else None


def context_for(node: Node) -> dict[str, str]:
    owner = enclosing_object(node)
    return owner.as_map() if owner is not None else {}


def _binding_parts(node: Node) -> tuple[str, Node] | None:
    """(name, value node) of a pair, declarator or assignment."""
    if node.type == "pair":
        name_node = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
    elif node.type == "variable_declarator":
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
    elif node.type == "assignment_expression":
        name_node = node.child_by_field_name("left")
        if name_node is not None and name_node.type == "member_expression":
            name_node = name_node.child_by_field_name("property")
        elif name_node is not None and name_node.type == "subscript_expression":
            name_node = name_node.child_by_field_name("index")
        value = node.child_by_field_name("right")
    else:
        return None

    if name_node is None or value is None:
        return None
    return property_name(name_node), value


# ---------------------------------------------------------------------------
# Provider-specific matchers
# ---------------------------------------------------------------------------


def match_aws_key(node: Node) -> Secret | None:
    """AWS access key ids, upgraded when a secret access key sits beside them."""
    value = literal_value(node)
    if value is None or not _AWS_KEY_RE.fullmatch(value):
        return None

    context = context_for(node)
    data = {"key": value}
    severity = Severity.MEDIUM
    for sibling in context.values():
        if sibling != value and _AWS_SECRET_RE.fullmatch(sibling):
            data["secret"] = sibling
            severity = Severity.HIGH
            break
    return Secret(kind="awsKey", data=data, severity=severity, context=context)


def match_gcp_key(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _GCP_KEY_RE.fullmatch(value):
        return None
    return Secret(
        kind="gcpKey", data={"key": value}, severity=Severity.MEDIUM, context=context_for(node)
    )


def match_github_key(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _GITHUB_KEY_RE.fullmatch(value):
        return None
    return Secret(
        kind="githubKey", data={"key": value}, severity=Severity.HIGH, context=context_for(node)
    )


def match_slack_token(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _SLACK_TOKEN_RE.fullmatch(value):
        return None
    return Secret(
        kind="slackToken", data={"token": value}, severity=Severity.HIGH, context=context_for(node)
    )


def match_slack_webhook(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _SLACK_WEBHOOK_RE.fullmatch(value):
        return None
    return Secret(
        kind="slackWebhook", data={"url": value}, severity=Severity.HIGH, context=context_for(node)
    )


def match_stripe_key(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _STRIPE_KEY_RE.fullmatch(value):
        return None
    return Secret(
        kind="stripeKey", data={"key": value}, severity=Severity.HIGH, context=context_for(node)
    )


def match_private_key(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _PRIVATE_KEY_RE.search(value):
        return None
    return Secret(
        kind="privateKey", data={"key": value}, severity=Severity.HIGH, context=context_for(node)
    )


def match_jwt(node: Node) -> Secret | None:
    value = literal_value(node)
    if value is None or not _JWT_RE.fullmatch(value):
        return None
    return Secret(
        kind="jwt", data={"token": value}, severity=Severity.MEDIUM, context=context_for(node)
    )


def match_firebase_config(node: Node) -> Secret | None:
    """Firebase web config objects: ``apiKey`` plus other known config keys."""
    config = node.as_map()
    if "apiKey" not in config:
        return None
    present = [key for key in FIREBASE_CONFIG_KEYS if key in config]
    if len(present) < FIREBASE_MIN_KEYS + 1:
        return None
    return Secret(
        kind="firebase",
        data={key: config[key] for key in present},
        severity=Severity.MEDIUM,
        context=config,
    )


# ---------------------------------------------------------------------------
# Name-based matcher
# ---------------------------------------------------------------------------


def match_generic_secret(node: Node) -> Secret | None:
    """High-entropy literals bound to a credential-sounding name.

    ``{clientSecret: "..."}``, ``const apiToken = "..."`` and
    ``cfg.password = "..."`` all qualify when the value is long, mixed and
    random-looking. Values with a provider-specific shape are left to the
    provider matchers.
    """
    parts = _binding_parts(node)
    if parts is None:
        return None
    name, value_node = parts
    if not _SECRET_NAME_RE.search(name):
        return None

    value = literal_value(value_node)
    if value is None or _is_known_shape(value) or not _looks_random(value):
        return None
    return Secret(
        kind="genericSecret",
        data={"key": name, "value": value},
        severity=Severity.LOW,
        context=node.parent().as_map() if node.type == "pair" else {},
    )


SECRET_MATCHERS: tuple[SecretMatcher, ...] = (
    SecretMatcher(STRING_QUERY, match_aws_key, "awsKey"),
    SecretMatcher(STRING_QUERY, match_gcp_key, "gcpKey"),
    SecretMatcher(STRING_QUERY, match_github_key, "githubKey"),
    SecretMatcher(STRING_QUERY, match_slack_token, "slackToken"),
    SecretMatcher(STRING_QUERY, match_slack_webhook, "slackWebhook"),
    SecretMatcher(STRING_QUERY, match_stripe_key, "stripeKey"),
    SecretMatcher(STRING_QUERY, match_private_key, "privateKey"),
    SecretMatcher(STRING_QUERY, match_jwt, "jwt"),
    SecretMatcher(OBJECT_QUERY, match_firebase_config, "firebase"),
    SecretMatcher(BINDING_QUERY, match_generic_secret, "genericSecret"),
)
