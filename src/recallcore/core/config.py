"""
RecallCore Configuration System
===============================
Centralized, validated configuration with environment variable overrides.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

import yaml

from recallcore.core.exceptions import ConfigurationError


CONFLICT_POLICIES = ("reject", "keep_existing", "replace")
ORDERING_STRATEGIES = ("shuffle", "date_ascending")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ReviewConfig:
    """Review session defaults, overridable per scheduler."""
    time_to_answer: Optional[float] = None  # seconds; None disables the timeout
    on_conflict: str = "reject"
    ordering: str = "shuffle"
    shuffle_seed: Optional[int] = None


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_format: bool = False


@dataclass(frozen=True)
class RecallConfig:
    """Root configuration for RecallCore."""

    version: str = "1.0"
    review: ReviewConfig = field(default_factory=ReviewConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _env_override(key: str, default):
    """Check for RECALL_<KEY> environment variable override."""
    env_key = f"RECALL_{key.upper()}"
    val = os.environ.get(env_key)
    if val is None:
        return default
    # Type coercion based on the default's type
    if isinstance(default, bool):
        return val.lower() in ("true", "1", "yes")
    if isinstance(default, int):
        return int(val)
    if isinstance(default, float):
        return float(val)
    return val


def _parse_optional_positive_float(key: str, value: Optional[object]) -> Optional[float]:
    """Parse a positive duration. None, empty strings and non-positive values disable it."""
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            config_key=key,
            reason=f"expected a number of seconds, got {value!r}",
        )
    return parsed if parsed > 0 else None


def _parse_optional_int(key: str, value: Optional[object]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(config_key=key, reason=f"expected an integer, got {value!r}")


def _check_choice(key: str, value: str, choices: tuple) -> str:
    if value not in choices:
        raise ConfigurationError(
            config_key=key,
            reason=f"must be one of {', '.join(choices)}, got {value!r}",
        )
    return value


def load_config(path: Optional[Path] = None) -> RecallConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Priority: ENV > YAML > defaults.

    Args:
        path: Path to config.yaml. If None, searches ./config.yaml and the project root.

    Returns:
        Validated RecallConfig instance.

    Raises:
        ConfigurationError: If a value is outside its allowed range.
    """
    if path is None:
        candidates = [
            Path("config.yaml"),
            Path(__file__).parent.parent.parent.parent / "config.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    raw = {}
    if path is not None and path.exists():
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
            raw = loaded.get("recall") or {}

    # Build review config
    review_raw = raw.get("review") or {}
    time_to_answer = _parse_optional_positive_float(
        "review.time_to_answer",
        os.environ.get("RECALL_TIME_TO_ANSWER", review_raw.get("time_to_answer")),
    )
    shuffle_seed = _parse_optional_int(
        "review.shuffle_seed",
        os.environ.get("RECALL_SHUFFLE_SEED", review_raw.get("shuffle_seed")),
    )
    review = ReviewConfig(
        time_to_answer=time_to_answer,
        on_conflict=_check_choice(
            "review.on_conflict",
            _env_override("ON_CONFLICT", review_raw.get("on_conflict", "reject")),
            CONFLICT_POLICIES,
        ),
        ordering=_check_choice(
            "review.ordering",
            _env_override("ORDERING", review_raw.get("ordering", "shuffle")),
            ORDERING_STRATEGIES,
        ),
        shuffle_seed=shuffle_seed,
    )

    # Build logging config
    logging_raw = raw.get("logging") or {}
    logging_config = LoggingConfig(
        level=_check_choice(
            "logging.level",
            str(_env_override("LOG_LEVEL", logging_raw.get("level", "INFO"))).upper(),
            LOG_LEVELS,
        ),
        json_format=_env_override("LOG_JSON", bool(logging_raw.get("json_format", False))),
    )

    return RecallConfig(
        version=str(raw.get("version", "1.0")),
        review=review,
        logging=logging_config,
    )


# Module-level singleton (lazy-loaded)
_CONFIG: Optional[RecallConfig] = None


def get_config() -> RecallConfig:
    """Get or initialize the global config singleton."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reset_config():
    """Reset the global config singleton (useful for testing)."""
    global _CONFIG
    _CONFIG = None
