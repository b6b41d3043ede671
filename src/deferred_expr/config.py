"""Library settings.

Settings are validated with pydantic and can be overridden from the
environment:

- DEFERRED_EXPR_MAX_PLACEHOLDERS: upper bound for placeholder indices
- DEFERRED_EXPR_CONSTANT_COPY: how constants copy their value (deep, shallow, none)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEFERRED_EXPR_"

CopyMode = Literal["deep", "shallow", "none"]


class ExpressionSettings(BaseModel):
    """Process-wide settings for expression construction."""

    model_config = {"frozen": True}

    max_placeholders: int = Field(
        7, ge=1, le=64, description="Number of positional placeholders allowed"
    )
    constant_copy: CopyMode = Field(
        "deep", description="Copy taken by Constant nodes at construction"
    )

    @field_validator("constant_copy", mode="before")
    @classmethod
    def normalize_copy_mode(cls, v: Any) -> Any:
        """Accept mixed-case copy modes from the environment."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ExpressionSettings":
        """Build settings from DEFERRED_EXPR_* environment variables."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        return cls(**values)


_SETTINGS: ExpressionSettings | None = None


def get_settings() -> ExpressionSettings:
    """Get the singleton settings instance."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = ExpressionSettings.from_env()
        logger.debug(f"Loaded settings: {_SETTINGS.model_dump()}")
    return _SETTINGS


def configure(**overrides: Any) -> ExpressionSettings:
    """Replace the active settings with validated overrides.

    Args:
        **overrides: Field values to change on top of the current settings

    Returns:
        The new active settings
    """
    global _SETTINGS
    current = get_settings().model_dump()
    current.update(overrides)
    _SETTINGS = ExpressionSettings(**current)
    logger.debug(f"Settings updated: {overrides}")
    return _SETTINGS


def reset_settings() -> None:
    """Drop the active settings so the next access reloads from the environment."""
    global _SETTINGS
    _SETTINGS = None
