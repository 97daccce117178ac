"""Router exposing the chart of accounts."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from oceanre_config.bridges import KernelServices
from oceanre_services.authorization import Actor

from .. import schemas
from ..database import get_services
from ..security import require

router = APIRouter()


@router.get("", response_model=List[schemas.AccountRead])
def list_accounts(
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("account.read")),
) -> List[schemas.AccountRead]:
    """Return all accounts ordered by code."""

    return services.accounts.list_accounts()


@router.post("", response_model=schemas.AccountRead, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: schemas.AccountCreate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("account.create")),
) -> schemas.AccountRead:
    return services.accounts.create_account(
        code=payload.code,
        name=payload.name,
        account_type=payload.account_type,
        actor_id=actor.actor_id,
        is_postable=payload.is_postable,
    )


@router.get("/{account_id}", response_model=schemas.AccountRead)
def get_account(
    account_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("account.read")),
) -> schemas.AccountRead:
    return services.accounts.get_account(account_id)


@router.put("/{account_id}", response_model=schemas.AccountRead)
def update_account(
    account_id: UUID,
    payload: schemas.AccountUpdate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("account.update")),
) -> schemas.AccountRead:
    """Update an account; structural changes are refused once lines reference it."""

    return services.accounts.update_account(
        account_id, actor.actor_id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: UUID,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("account.delete")),
) -> Response:
    services.accounts.delete_account(account_id, actor.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
