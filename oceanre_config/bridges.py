"""
Config -> Kernel Bridges.

Functions that convert ``Settings`` into kernel constructor arguments.
They live here because the kernel must NEVER import oceanre_config.

Usage:
    from oceanre_config.bridges import build_kernel_services

    settings = get_active_settings()
    services = build_kernel_services(session, settings)
    services.periods.validate(period_id, actor_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from oceanre_config.settings import Settings
from oceanre_kernel.domain.clock import Clock
from oceanre_kernel.services.account_registry import AccountRegistry
from oceanre_kernel.services.journal_store import JournalStore
from oceanre_kernel.services.period_guard import PeriodGuard
from oceanre_kernel.services.period_service import PeriodLifecycleService


@dataclass(frozen=True)
class KernelServices:
    """Kernel services bound to one session."""

    accounts: AccountRegistry
    journal: JournalStore
    periods: PeriodLifecycleService


def build_kernel_services(
    session: Session,
    settings: Settings,
    clock: Clock | None = None,
    guard: PeriodGuard | None = None,
) -> KernelServices:
    """Build the kernel services for ``session`` under ``settings``."""
    return KernelServices(
        accounts=AccountRegistry(session),
        journal=JournalStore(
            session,
            amount_places=settings.amount_places,
            guard=guard,
        ),
        periods=PeriodLifecycleService(
            session,
            clock=clock,
            amount_places=settings.amount_places,
            enforce_single_open_period=settings.enforce_single_open_period,
            guard=guard,
        ),
    )
