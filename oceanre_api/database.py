"""Database and settings dependencies for the FastAPI application."""

from __future__ import annotations

from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from oceanre_config import Settings, get_active_settings
from oceanre_config.bridges import KernelServices, build_kernel_services
from oceanre_kernel.db.engine import get_session, init_engine_from_url
from oceanre_kernel.logging_config import get_logger
from oceanre_services.period_actions import PeriodActionService

logger = get_logger("api.database")

_engine_ready = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the active settings, loaded once per process."""
    return get_active_settings()


def ensure_engine(settings: Settings) -> None:
    """Initialize the kernel engine from settings on first use."""
    global _engine_ready
    if not _engine_ready:
        init_engine_from_url(settings.database_url)
        _engine_ready = True


def get_db() -> Generator[Session, None, None]:
    """Yield a session bound to one transaction per request.

    The transaction commits when the endpoint returns and rolls back when
    it raises.
    """
    ensure_engine(get_settings())
    db = get_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("request_transaction_rolled_back")
        raise
    finally:
        db.close()


def get_services(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> KernelServices:
    """Kernel services bound to the request session."""
    return build_kernel_services(db, settings)


def get_period_actions(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PeriodActionService:
    return PeriodActionService(db, settings)
