"""Pydantic models for JavaScript extraction findings.

This module defines the finding shapes handed to callers: ``URL`` records
for endpoints and navigation targets, and ``Secret`` records for
credential-like values. Field aliases are the serialisation contract for
downstream tooling, so ``to_dict()`` always dumps by alias.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity levels for secret findings, ordered ``low < medium < high``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    # str ordering would compare the names alphabetically
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
}


class URL(BaseModel):
    """A URL or path extracted from JavaScript source.

    Attributes:
        url: The URL/path with unresolved parts rendered as ``EXPR``.
        query_params: Query parameter names, unique, in first-seen order.
        body_params: Request body parameter names, unique, in first-seen
            order.
        method: HTTP method, upper-case.
        headers: Request headers named by the matched call, if any.
        content_type: Request content type, if one was declared.
        type: Tag of the matcher that produced the finding (e.g.,
            ``"fetch"``, ``"locationAssignment"``).
        source: Verbatim source text of the matched expression.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str
    query_params: list[str] = Field(default_factory=list, alias="queryParams")
    body_params: list[str] = Field(default_factory=list, alias="bodyParams")
    method: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    content_type: str = Field(default="", alias="contentType")
    type: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase field names.

        ``headers`` and ``contentType`` are omitted when empty.
        """
        data = self.model_dump(by_alias=True)
        if not self.headers:
            data.pop("headers")
        if not self.content_type:
            data.pop("contentType")
        return data


class Secret(BaseModel):
    """A secret-like value extracted from JavaScript source.

    Attributes:
        kind: Matcher-defined category such as ``"awsKey"``.
        data: Descriptive field name -> extracted value.
        severity: How sensitive the value is likely to be.
        context: Surrounding structural data for triage, typically the
            sibling properties of the enclosing object literal.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    data: dict[str, str] = Field(default_factory=dict)
    severity: Severity = Severity.LOW
    context: dict[str, str] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
