"""Router exposing accounting periods and their lifecycle actions."""

from __future__ import annotations

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from oceanre_config.bridges import KernelServices
from oceanre_services.authorization import Actor
from oceanre_services.period_actions import ActionResult, PeriodActionService

from .. import schemas
from ..database import get_period_actions, get_services
from ..security import get_actor, require

router = APIRouter()


@router.get("", response_model=List[schemas.PeriodRead])
def list_periods(
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("period.read")),
) -> List[schemas.PeriodRead]:
    return services.periods.list_periods()


@router.post("", response_model=schemas.PeriodRead, status_code=status.HTTP_201_CREATED)
def create_period(
    payload: schemas.PeriodCreate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("period.create")),
) -> schemas.PeriodRead:
    """Create an OPEN period."""

    return services.periods.create_period(
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        actor_id=actor.actor_id,
    )


@router.get("/{period_id}", response_model=schemas.PeriodRead)
def get_period(
    period_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("period.read")),
) -> schemas.PeriodRead:
    return services.periods.get_period(period_id)


@router.put("/{period_id}", response_model=schemas.PeriodRead)
def update_period(
    period_id: UUID,
    payload: schemas.PeriodUpdate,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("period.update")),
) -> schemas.PeriodRead:
    return services.periods.update_period(
        period_id, actor.actor_id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_period(
    period_id: UUID,
    services: KernelServices = Depends(get_services),
    actor: Actor = Depends(require("period.delete")),
) -> Response:
    services.periods.delete_period(period_id, actor.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _action_response(result: ActionResult) -> Any:
    if result.ok:
        return result
    return JSONResponse(
        status_code=422,
        content=schemas.ActionResultRead.model_validate(result).model_dump(mode="json"),
    )


@router.post("/{period_id}/validate", response_model=schemas.ActionResultRead)
def validate_period(
    period_id: UUID,
    actions: PeriodActionService = Depends(get_period_actions),
    actor: Actor = Depends(get_actor),
) -> Any:
    """Run validation; a report with violations is answered with 422."""

    return _action_response(actions.validate(period_id, actor))


@router.post("/{period_id}/calculate", response_model=schemas.ActionResultRead)
def calculate_period(
    period_id: UUID,
    actions: PeriodActionService = Depends(get_period_actions),
    actor: Actor = Depends(get_actor),
) -> Any:
    return _action_response(actions.calculate(period_id, actor))


@router.post("/{period_id}/lock", response_model=schemas.ActionResultRead)
def lock_period(
    period_id: UUID,
    actions: PeriodActionService = Depends(get_period_actions),
    actor: Actor = Depends(get_actor),
) -> Any:
    return _action_response(actions.lock(period_id, actor))


@router.patch("/{period_id}/status", response_model=schemas.ActionResultRead)
def change_period_status(
    period_id: UUID,
    payload: schemas.StatusChange,
    actions: PeriodActionService = Depends(get_period_actions),
    actor: Actor = Depends(get_actor),
) -> Any:
    """Administrative override; VALIDATING and CALCULATING are refused."""

    return _action_response(actions.change_status(period_id, payload.status, actor))


@router.get("/{period_id}/balances")
def get_period_balances(
    period_id: UUID,
    services: KernelServices = Depends(get_services),
    _: Actor = Depends(require("period.read")),
) -> dict[str, Any]:
    """Return the balances persisted by the period's last calculation."""

    return services.periods.get_balance_report(period_id).to_dict()
