"""
oceanre_services.authorization -- capability checks at the request boundary.

Responsibility:
    Check that an actor's role grants the capability an operation needs,
    using the role -> capability map from ``Settings``.

Architecture position:
    Services layer.  Consumes ``Settings`` from oceanre_config.  Called by
    PeriodActionService and the API routers before any kernel call.

Invariants:
    - The kernel stays actor-agnostic; it only records actor ids.
    - Authorization is checked before the operation runs, never after.
    - Unknown roles grant nothing (fail closed).
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from oceanre_config.settings import (
    ACCOUNTING_READ,
    ACCOUNTING_WRITE,
    PERIOD_LIFECYCLE,
    PERIOD_STATUS_OVERRIDE,
    Settings,
)
from oceanre_kernel.exceptions import AuthorizationError
from oceanre_kernel.logging_config import get_logger

logger = get_logger("services.authorization")


# operation -> capability string (must be in CAPABILITIES)
OPERATION_CAPABILITIES: dict[str, str] = {
    # Accounts
    "account.read": ACCOUNTING_READ,
    "account.create": ACCOUNTING_WRITE,
    "account.update": ACCOUNTING_WRITE,
    "account.delete": ACCOUNTING_WRITE,
    # Periods
    "period.read": ACCOUNTING_READ,
    "period.create": ACCOUNTING_WRITE,
    "period.update": ACCOUNTING_WRITE,
    "period.delete": ACCOUNTING_WRITE,
    "period.validate": PERIOD_LIFECYCLE,
    "period.calculate": PERIOD_LIFECYCLE,
    "period.lock": PERIOD_LIFECYCLE,
    "period.change_status": PERIOD_STATUS_OVERRIDE,
    # Journal
    "journal.read": ACCOUNTING_READ,
    "journal.create": ACCOUNTING_WRITE,
    "journal.update": ACCOUNTING_WRITE,
    "journal.delete": ACCOUNTING_WRITE,
}


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as supplied by the upstream identity layer."""

    actor_id: UUID
    role: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", (self.role or "").strip().upper())


def get_capability_for_operation(operation: str) -> str:
    """Return the capability required for ``operation``.

    Raises:
        KeyError: If the operation is not registered.
    """
    return OPERATION_CAPABILITIES[operation]


def check_capability(actor: Actor, capability: str, settings: Settings) -> tuple[bool, str]:
    """Check whether the actor's role grants ``capability``.

    Returns:
        (allowed, reason).  reason is empty when allowed.
    """
    if not actor.role:
        return (False, "no role supplied")
    if not settings.grants(actor.role, capability):
        return (False, f"capability '{capability}' not granted to role '{actor.role}'")
    return (True, "")


def authorize(actor: Actor, capability: str, settings: Settings) -> None:
    """
    Raise unless the actor may use ``capability``.

    Raises:
        AuthorizationError: The role lacks the capability.
    """
    allowed, reason = check_capability(actor, capability, settings)
    if not allowed:
        logger.warning(
            "authorization_denied",
            extra={
                "actor_id": str(actor.actor_id),
                "role": actor.role,
                "capability": capability,
                "reason": reason,
            },
        )
        raise AuthorizationError(actor.role, capability)


def authorize_operation(actor: Actor, operation: str, settings: Settings) -> None:
    """``authorize`` keyed by operation name instead of capability."""
    authorize(actor, get_capability_for_operation(operation), settings)
