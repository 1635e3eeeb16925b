from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from transfer_tracker.auth import Actor, get_current_actor, require_role
from transfer_tracker.db import get_db
from transfer_tracker.models import RepairTransfer, UserRole
from transfer_tracker.schemas import (
    StatusLogOut,
    StatusUpdate,
    TransferCreate,
    TransferDetail,
    TransferLabel,
    TransferOut,
    TransferSummaryOut,
    UserOut,
)
from transfer_tracker.services.policy_service import can_transition
from transfer_tracker.services.transfer_service import (
    NewTransfer,
    TransferFilters,
    create_transfer,
    get_transfer_for_user,
    history_for_user,
    list_transfers,
    transfer_label_payload,
    transfer_summary,
    update_status,
)
from transfer_tracker.status import format_currency, next_status, status_color

router = APIRouter(tags=['transfers'])


def _parse_date(raw: str | None) -> date | None:
    raw = (raw or '').strip()
    return date.fromisoformat(raw) if raw else None


def _detail(actor: Actor, transfer: RepairTransfer) -> TransferDetail:
    return TransferDetail(
        **TransferOut.model_validate(transfer).model_dump(),
        can_update=can_transition(actor.role, transfer.status),
        next_status=next_status(transfer.status),
        status_color=status_color(transfer.status),
    )


@router.get('/me', response_model=UserOut)
def me(actor: Actor = Depends(get_current_actor)):
    return actor


@router.get('/transfers', response_model=list[TransferOut])
def transfers_list(
    search: str | None = None,
    status_filter: str | None = Query(default=None, alias='status'),
    branch: str | None = None,
    from_raw: str | None = Query(default=None, alias='from'),
    to_raw: str | None = Query(default=None, alias='to'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        from_date = _parse_date(from_raw)
        to_date = _parse_date(to_raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid date filter') from exc

    filters = TransferFilters(
        search=search,
        status=status_filter or None,
        branch=branch,
        from_date=from_date,
        to_date=to_date,
    )
    return list_transfers(db, actor=actor, filters=filters)


@router.get('/transfers/summary', response_model=TransferSummaryOut)
def transfers_summary(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    summary = transfer_summary(db, actor=actor)
    return TransferSummaryOut(
        total=summary.total,
        pending=summary.pending,
        in_repair=summary.in_repair,
        completed=summary.completed,
        total_cost=summary.total_cost,
        total_cost_display=format_currency(summary.total_cost),
        recent=[TransferOut.model_validate(transfer) for transfer in summary.recent],
    )


@router.post('/transfers', response_model=TransferDetail, status_code=status.HTTP_201_CREATED)
def transfers_create(
    payload: TransferCreate,
    actor: Actor = Depends(require_role(UserRole.HQ_STAFF)),
    db: Session = Depends(get_db),
):
    transfer = create_transfer(db, actor=actor, fields=NewTransfer(**payload.model_dump()))
    return _detail(actor, transfer)


@router.get('/transfers/{transfer_id}', response_model=TransferDetail)
def transfers_detail(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return _detail(actor, get_transfer_for_user(db, actor=actor, transfer_id=transfer_id))


@router.post('/transfers/{transfer_id}/status', response_model=TransferDetail)
def transfers_update_status(
    transfer_id: str,
    payload: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    transfer = update_status(
        db,
        actor=actor,
        transfer_id=transfer_id,
        new_status=payload.status,
        remarks=payload.remarks,
        technician_receive_name=payload.technician_receive_name,
        date_received_by_tech=payload.date_received_by_tech,
        date_repair_done=payload.date_repair_done,
        repair_cost=payload.repair_cost,
    )
    return _detail(actor, transfer)


@router.get('/transfers/{transfer_id}/logs', response_model=list[StatusLogOut])
def transfers_logs(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return history_for_user(db, actor=actor, transfer_id=transfer_id)


@router.get('/transfers/{transfer_id}/label', response_model=TransferLabel)
def transfers_label(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return transfer_label_payload(get_transfer_for_user(db, actor=actor, transfer_id=transfer_id))
