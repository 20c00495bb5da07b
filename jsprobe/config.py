"""Configuration models for jsprobe analyzers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import DEFAULT_LANGUAGE, DEFAULT_MAX_EXPRESSION_DEPTH
from .core.exceptions import InvalidConfigError

ENV_PREFIX = "JSPROBE_"


class AnalyzerSettings(BaseModel):
    """Per-analyzer extraction settings."""

    model_config = ConfigDict(frozen=True)

    language: Literal["javascript", "typescript", "tsx"] = Field(
        default=DEFAULT_LANGUAGE, description="Grammar used to parse the source"
    )
    max_expression_depth: int = Field(
        default=DEFAULT_MAX_EXPRESSION_DEPTH,
        ge=1,
        description="Nesting depth past which sub-expressions collapse to EXPR",
    )
    include_default_matchers: bool = Field(
        default=True, description="Start from the built-in URL and secret matchers"
    )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        prefix: str = ENV_PREFIX,
    ) -> AnalyzerSettings:
        """
        Build settings from ``<prefix><FIELD>`` environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``
            prefix: Variable name prefix

        Returns:
            Validated settings

        Raises:
            InvalidConfigError: If any variable fails validation
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = f"{prefix}{name.upper()}"
            if key in environ:
                values[name] = environ[key].strip()

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid {prefix}* settings: {e}") from e
