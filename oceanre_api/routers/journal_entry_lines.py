"""Router exposing journal entry lines."""

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


@router.post("/", response_model=schemas.JournalLineRead, status_code=status.HTTP_201_CREATED)
def create_journal_line(
    payload: schemas.JournalLineCreate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.create")),
) -> schemas.JournalLineRead:
    """Append a line to an existing entry."""

    return services.journal.add_line(
        entry_id=payload.journal_entry_id,
        account_id=payload.account_id,
        actor_id=actor.actor_id,
        debit=payload.debit,
        credit=payload.credit,
        memo=payload.memo,
    )


@router.get("/entry/{entry_id}", response_model=List[schemas.JournalLineRead])
def list_lines_by_entry(
    entry_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("journal.read")),
) -> List[schemas.JournalLineRead]:
    return services.journal.get_lines_by_entry(entry_id)


@router.get("/{line_id}", response_model=schemas.JournalLineRead)
def get_journal_line(
    line_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("journal.read")),
) -> schemas.JournalLineRead:
    return services.journal.get_line(line_id)


@router.put("/{line_id}", response_model=schemas.JournalLineRead)
def update_journal_line(
    line_id: UUID,
    payload: schemas.JournalLineUpdate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.update")),
) -> schemas.JournalLineRead:
    return services.journal.update_line(
        line_id, actor.actor_id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_journal_line(
    line_id: UUID,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.delete")),
) -> Response:
    services.journal.delete_line(line_id, actor.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
