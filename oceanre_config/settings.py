"""
Settings schema (``oceanre_config.settings``).

Frozen runtime settings produced by the loader.  Nothing here reads files
or the environment; see ``oceanre_config.get_active_settings``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

# Capability taxonomy checked at the request boundary
ACCOUNTING_READ = "accounting.read"
ACCOUNTING_WRITE = "accounting.write"
PERIOD_LIFECYCLE = "period.lifecycle"
PERIOD_STATUS_OVERRIDE = "period.status_override"

CAPABILITIES: frozenset[str] = frozenset(
    {ACCOUNTING_READ, ACCOUNTING_WRITE, PERIOD_LIFECYCLE, PERIOD_STATUS_OVERRIDE}
)

# Storage is Numeric(20, 6); presentation precision may not exceed it
MAX_AMOUNT_PLACES = 6


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration.

    ``role_capabilities`` maps an upper-case role name to the capabilities
    it grants.  Unknown roles grant nothing.
    """

    database_url: str
    amount_places: int = 2
    enforce_single_open_period: bool = False
    role_capabilities: Mapping[str, frozenset[str]] = field(default_factory=dict)
    log_level: str = "INFO"

    def capabilities_for(self, role: str) -> frozenset[str]:
        return self.role_capabilities.get((role or "").upper(), frozenset())

    def grants(self, role: str, capability: str) -> bool:
        return capability in self.capabilities_for(role)
