"""Project-level configuration loaded from ``exprparse.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from exprparse.formulas.parser import DEFAULT_MAX_DEPTH

CONFIG_FILENAME = "exprparse.yaml"

DEFAULT_CONFIG = {
    "max_depth": DEFAULT_MAX_DEPTH,
    "max_summation_terms": 1_000_000,
    "logging_enabled": False,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

# Keys holding a non-negative integer; ``null`` means "no limit" / default.
_INT_KEYS = ("max_depth", "max_summation_terms", "logging_tail_bytes")


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``exprparse.yaml``, with defaults.

    Example::

        max_depth: 200
        max_summation_terms: 10000
        logging_enabled: true

    Args:
        project_dir: Directory that may contain ``exprparse.yaml``.

    Returns:
        Merged configuration dict with integer settings normalised.

    Raises:
        ValueError: If the file is not valid YAML, does not hold a mapping,
            or an integer setting has a non-integer value.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        try:
            user_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(user_config).__name__}")
        config.update(user_config)

    for key in _INT_KEYS:
        config[key] = _coerce_int(config_path, key, config.get(key))
    return config


def _coerce_int(config_path: Path, key: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{config_path}: {key} must be an integer or null, got {value!r}")
    try:
        number = int(value)
    except ValueError as e:
        raise ValueError(f"{config_path}: {key} must be an integer or null, got {value!r}") from e
    if number < 0:
        raise ValueError(f"{config_path}: {key} must not be negative, got {number}")
    return number


def parse_limits(config: dict[str, Any]) -> dict[str, int | None]:
    """Extract parser limit keyword arguments from a loaded config dict.

    A ``null`` value disables the corresponding limit.
    """
    return {key: config.get(key) for key in ("max_depth", "max_summation_terms")}
