"""
oceanre_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_settings()``.  No other component may read settings files
    or environment variables directly.

Architecture position:
    Configuration.  Sits above ``oceanre_kernel`` and below
    ``oceanre_services`` / ``oceanre_api``.  The kernel MUST NEVER import
    from ``oceanre_config``; ``bridges`` translates settings into kernel
    constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- the selected settings file does not exist.
    - ``ValueError`` / ``KeyError`` -- invalid or missing settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from oceanre_config.loader import load_yaml_file, parse_settings
from oceanre_config.settings import (
    ACCOUNTING_READ,
    ACCOUNTING_WRITE,
    CAPABILITIES,
    PERIOD_LIFECYCLE,
    PERIOD_STATUS_OVERRIDE,
    Settings,
)

_logger = logging.getLogger("oceanre_kernel.config")

# Default settings file
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "OCEANRE_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def get_active_settings(config_path: Path | str | None = None) -> Settings:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then the
    ``OCEANRE_CONFIG`` environment variable, then the packaged default.
    ``DATABASE_URL`` in the environment overrides the file's URL.

    Raises:
        FileNotFoundError: If the selected file does not exist.
        ValueError: If a field is invalid.
        KeyError: If no database URL is configured.
    """
    path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    data = load_yaml_file(path)
    settings = parse_settings(data, database_url=os.environ.get(DATABASE_URL_ENV_VAR))

    _logger.info(
        "settings_loaded",
        extra={
            "config_path": str(path),
            "amount_places": settings.amount_places,
            "enforce_single_open_period": settings.enforce_single_open_period,
            "role_count": len(settings.role_capabilities),
        },
    )

    return settings


__all__ = [
    "ACCOUNTING_READ",
    "ACCOUNTING_WRITE",
    "CAPABILITIES",
    "DEFAULT_CONFIG_PATH",
    "PERIOD_LIFECYCLE",
    "PERIOD_STATUS_OVERRIDE",
    "Settings",
    "get_active_settings",
]
