"""Request boundary: authorization and period lifecycle actions."""

from oceanre_services.authorization import (
    OPERATION_CAPABILITIES,
    Actor,
    authorize,
    authorize_operation,
    check_capability,
)
from oceanre_services.period_actions import ActionResult, PeriodActionService

__all__ = [
    "ActionResult",
    "Actor",
    "OPERATION_CAPABILITIES",
    "PeriodActionService",
    "authorize",
    "authorize_operation",
    "check_capability",
]
