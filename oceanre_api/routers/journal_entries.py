"""Router exposing journal entries."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from oceanre_config.bridges import KernelServices
from oceanre_kernel.domain.dtos import JournalEntryInfo, LineInput
from oceanre_services.authorization import Actor

from .. import schemas
from ..database import get_services
from ..security import require

router = APIRouter()


def _entry_read(entry: JournalEntryInfo) -> schemas.JournalEntryRead:
    return schemas.JournalEntryRead.model_validate(entry)


@router.get("", response_model=List[schemas.JournalEntryRead])
def list_journal_entries(
    period_id: Optional[UUID] = Query(None, description="Only entries of this period"),
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("journal.read")),
) -> List[schemas.JournalEntryRead]:
    return [_entry_read(e) for e in services.journal.list_entries(period_id=period_id)]


@router.post("", response_model=schemas.JournalEntryRead, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    payload: schemas.JournalEntryCreate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.create")),
) -> schemas.JournalEntryRead:
    """Create an entry with its initial lines in one request."""

    entry = services.journal.create_entry(
        entry_number=payload.entry_number,
        posting_date=payload.posting_date,
        period_id=payload.period_id,
        actor_id=actor.actor_id,
        lines=[
            LineInput(
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                memo=line.memo,
            )
            for line in payload.lines
        ],
        description=payload.description,
        source_reference=payload.source_reference,
    )
    return _entry_read(entry)


@router.get("/{entry_id}", response_model=schemas.JournalEntryRead)
def get_journal_entry(
    entry_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("journal.read")),
) -> schemas.JournalEntryRead:
    return _entry_read(services.journal.get_entry(entry_id))


@router.put("/{entry_id}", response_model=schemas.JournalEntryRead)
def update_journal_entry(
    entry_id: UUID,
    payload: schemas.JournalEntryUpdate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.update")),
) -> schemas.JournalEntryRead:
    entry = services.journal.update_entry(
        entry_id, actor.actor_id, **payload.model_dump(exclude_unset=True)
    )
    return _entry_read(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_journal_entry(
    entry_id: UUID,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("journal.delete")),
) -> Response:
    services.journal.delete_entry(entry_id, actor.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
