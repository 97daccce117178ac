"""
oceanre_services.period_actions -- period lifecycle actions for the UI.

Responsibility:
    Wraps validate, calculate, lock and change_status behind capability
    checks and returns a uniform ``ActionResult`` the front end renders
    directly.

Architecture position:
    Services layer.  Builds kernel services through
    ``oceanre_config.bridges``; the caller owns the session transaction.

Contract:
    - A validation with violations is NOT an error: it yields ``ok=False``
      with the violation list in ``detail``.
    - Kernel guard failures (stale, busy, locked) propagate as typed
      exceptions so the boundary maps them to a status code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from oceanre_config.bridges import build_kernel_services
from oceanre_config.settings import Settings
from oceanre_kernel.domain.clock import Clock
from oceanre_kernel.logging_config import LogContext, get_logger
from oceanre_kernel.models.fiscal_period import PeriodStatus
from oceanre_kernel.services.period_guard import PeriodGuard
from oceanre_services.authorization import Actor, authorize_operation

logger = get_logger("services.period_actions")


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a period action."""

    ok: bool
    message: str
    period_id: UUID
    status: str
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "message": self.message,
            "period_id": str(self.period_id),
            "status": self.status,
            "detail": self.detail,
        }


class PeriodActionService:
    """Capability-checked facade over PeriodLifecycleService."""

    def __init__(
        self,
        session: Session,
        settings: Settings,
        clock: Clock | None = None,
        guard: PeriodGuard | None = None,
    ):
        self._settings = settings
        self._periods = build_kernel_services(session, settings, clock=clock, guard=guard).periods

    def _status(self, period_id: UUID) -> str:
        return self._periods.get_period(period_id).status

    def validate(self, period_id: UUID, actor: Actor) -> ActionResult:
        authorize_operation(actor, "period.validate", self._settings)
        with LogContext.bind(period_id=period_id):
            report = self._periods.validate(period_id, actor.actor_id)

        if report.is_clean:
            message = f"Period validated: {report.entries_checked} entries checked"
        else:
            message = f"Period has {len(report.violations)} violation(s)"

        return ActionResult(
            ok=report.is_clean,
            message=message,
            period_id=period_id,
            status=self._status(period_id),
            detail=report.to_dict(),
        )

    def calculate(self, period_id: UUID, actor: Actor) -> ActionResult:
        authorize_operation(actor, "period.calculate", self._settings)
        with LogContext.bind(period_id=period_id):
            report = self._periods.calculate(period_id, actor.actor_id)

        return ActionResult(
            ok=True,
            message=f"Period calculated: {len(report.rows)} account balance(s)",
            period_id=period_id,
            status=self._status(period_id),
            detail=report.to_dict(),
        )

    def lock(self, period_id: UUID, actor: Actor) -> ActionResult:
        authorize_operation(actor, "period.lock", self._settings)
        with LogContext.bind(period_id=period_id):
            period = self._periods.lock(period_id, actor.actor_id)

        return ActionResult(
            ok=True,
            message="Period locked",
            period_id=period_id,
            status=period.status,
            detail={"revision": period.revision, "locked_at": str(period.locked_at)},
        )

    def change_status(
        self, period_id: UUID, new_status: PeriodStatus | str, actor: Actor
    ) -> ActionResult:
        authorize_operation(actor, "period.change_status", self._settings)
        with LogContext.bind(period_id=period_id):
            period = self._periods.change_status(period_id, new_status, actor.actor_id)

        return ActionResult(
            ok=True,
            message=f"Period status changed to {period.status}",
            period_id=period_id,
            status=period.status,
            detail={"revision": period.revision},
        )
