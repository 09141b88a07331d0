"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic across entrypoints.
"""

from __future__ import annotations

ENGINE_NAMES = ("fake", "vlc")
DEFAULT_ENGINE = "vlc"


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_engine_name(value: str | None) -> str | None:
    """Return a supported engine name, or None when the value is unknown."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in ENGINE_NAMES:
        return normalized
    return None


def resolve_engine_name(cli_engine: str | None, config_engine: str | None) -> str:
    """CLI choice wins over the config file; unknown values fall through."""
    for candidate in (cli_engine, config_engine):
        name = normalize_engine_name(candidate)
        if name is not None:
            return name
    return DEFAULT_ENGINE
