"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def optional_env_var(name: str) -> str | None:
    """Return a stripped environment variable, treating blank values as unset."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def optional_env_int(name: str, default: int | None) -> int | None:
    """Parse an integer environment variable.

    ``none`` / ``unlimited`` map to ``None`` so limits can be switched off.
    """

    raw = optional_env_var(name)
    if raw is None:
        return default
    if raw.lower() in {"none", "unlimited"}:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
