"""Identity and capability dependencies.

Identity is established upstream; requests carry it in the
``X-Actor-Id`` and ``X-Actor-Role`` headers.
"""

from __future__ import annotations

from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from oceanre_config import Settings
from oceanre_services.authorization import Actor, authorize_operation

from .database import get_settings

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def get_actor(
    actor_id: Optional[str] = Header(None, alias=ACTOR_ID_HEADER),
    actor_role: Optional[str] = Header(None, alias=ACTOR_ROLE_HEADER),
) -> Actor:
    """FastAPI dependency resolving the calling actor from request headers."""

    if not actor_id or not actor_role or not actor_role.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity headers",
        )
    try:
        parsed_id = UUID(actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{ACTOR_ID_HEADER} must be a UUID",
        ) from None
    return Actor(actor_id=parsed_id, role=actor_role)


def require(operation: str) -> Callable[..., Actor]:
    """Build a dependency that authorizes ``operation`` for the caller."""

    def dependency(
        actor: Actor = Depends(get_actor),
        settings: Settings = Depends(get_settings),
    ) -> Actor:
        authorize_operation(actor, operation, settings)
        return actor

    return dependency
