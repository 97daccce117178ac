"""
Configuration Loader (``oceanre_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen ``Settings``
dataclass.  The single public entry point for runtime settings is
``oceanre_config.get_active_settings()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every role maps only to capabilities in ``CAPABILITIES``.
* ``amount_places`` lies in 0..MAX_AMOUNT_PLACES.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database_url``  -> ``KeyError`` propagates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from oceanre_config.settings import CAPABILITIES, MAX_AMOUNT_PLACES, Settings

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_role_capabilities(data: Any) -> dict[str, frozenset[str]]:
    """Parse the ``role_capabilities`` mapping, rejecting unknown capabilities."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"role_capabilities must be a mapping, got {type(data).__name__}")

    parsed: dict[str, frozenset[str]] = {}
    for role, capabilities in data.items():
        if capabilities is None:
            capabilities = []
        if not isinstance(capabilities, list):
            raise ValueError(f"Capabilities for role {role!r} must be a list")
        unknown = set(capabilities) - CAPABILITIES
        if unknown:
            raise ValueError(
                f"Unknown capabilities for role {role!r}: {sorted(unknown)}"
            )
        parsed[str(role).upper()] = frozenset(capabilities)
    return parsed


def parse_amount_places(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"amount_places must be an integer, got {value!r}")
    if not 0 <= value <= MAX_AMOUNT_PLACES:
        raise ValueError(
            f"amount_places must be between 0 and {MAX_AMOUNT_PLACES}, got {value}"
        )
    return value


def parse_settings(data: dict[str, Any], database_url: str | None = None) -> Settings:
    """
    Parse a ``Settings`` from a dict.

    Args:
        data: Parsed YAML mapping.
        database_url: Override for ``data["database_url"]``.

    Raises:
        KeyError: if no database URL is configured.
        ValueError: on an invalid field value.
    """
    url = database_url or data["database_url"]

    single_open = data.get("enforce_single_open_period", False)
    if not isinstance(single_open, bool):
        raise ValueError(f"enforce_single_open_period must be a boolean, got {single_open!r}")

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level: {log_level!r}")

    return Settings(
        database_url=url,
        amount_places=parse_amount_places(data.get("amount_places", 2)),
        enforce_single_open_period=single_open,
        role_capabilities=parse_role_capabilities(data.get("role_capabilities")),
        log_level=log_level,
    )
