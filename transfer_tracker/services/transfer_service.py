"""Repair transfer lifecycle and role-scoped queries.

LIFECYCLE:
1. Pending: created by HQ staff and dispatched to the repair hub
2. Received: the hub's technician has the device
3. In Repair
4. Done: repair finished, cost recorded
5. Returned: device back at the originating branch

Any user allowed to update may pick any target status; the order above is
only what ``next_status`` suggests.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from transfer_tracker.auth import Actor
from transfer_tracker.config import settings
from transfer_tracker.db import store_errors
from transfer_tracker.errors import NotFoundError, ValidationError
from transfer_tracker.models import RepairTransfer, StatusLog, utc_now
from transfer_tracker.services.policy_service import (
    assert_can_create,
    assert_can_transition,
    assert_visible,
    visibility_clause,
)
from transfer_tracker.services.status_log_service import append_status_log, list_status_logs
from transfer_tracker.status import TransferStatus, parse_status

logger = logging.getLogger(__name__)

MIN_IMEI_LENGTH = 15
MAX_IMEI_LENGTH = 64
# Numeric(12, 2) on repair_transfers.repair_cost.
MAX_REPAIR_COST = Decimal('9999999999.99')
COST_PLACES = 2
CREATED_REMARKS = 'Transfer created'


@dataclass
class NewTransfer:
    customer_name: str
    phone_model: str
    imei: str
    problem_description: str
    staff_receive_name: str
    date_from_branch: date | str | None
    passcode: str | None = None


@dataclass
class TransferFilters:
    search: str | None = None
    status: TransferStatus | str | None = None
    branch: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    limit: int | None = None


@dataclass
class TransferSummary:
    total: int = 0
    pending: int = 0
    in_repair: int = 0
    completed: int = 0
    total_cost: Decimal = Decimal('0')
    recent: list[RepairTransfer] = field(default_factory=list)


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def new_transfer_id() -> str:
    return f'transfer_{uuid4().hex}'


def _clean(value: str | None) -> str:
    return (value or '').strip()


def _coerce_date(value: date | str | None, *, field_name: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    raw = value.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError('Invalid date', errors={field_name: 'Enter a valid date (YYYY-MM-DD)'}) from exc


def _coerce_cost(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        cost = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError('Invalid repair cost', errors={'repair_cost': 'Repair cost must be a number'}) from exc
    if not cost.is_finite():
        raise ValidationError('Invalid repair cost', errors={'repair_cost': 'Repair cost must be a number'})
    if cost < 0:
        raise ValidationError('Invalid repair cost', errors={'repair_cost': 'Repair cost cannot be negative'})
    if cost > MAX_REPAIR_COST:
        raise ValidationError(
            'Invalid repair cost', errors={'repair_cost': f'Repair cost cannot exceed {MAX_REPAIR_COST}'}
        )
    if cost != cost.quantize(Decimal(1).scaleb(-COST_PLACES)):
        raise ValidationError(
            'Invalid repair cost', errors={'repair_cost': f'Repair cost can have at most {COST_PLACES} decimal places'}
        )
    return cost


def validate_new_transfer(fields: NewTransfer) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not _clean(fields.customer_name):
        errors['customer_name'] = 'Customer name is required'
    if not _clean(fields.phone_model):
        errors['phone_model'] = 'Phone model is required'

    imei = _clean(fields.imei)
    if not imei:
        errors['imei'] = 'IMEI is required'
    elif len(imei) < MIN_IMEI_LENGTH:
        errors['imei'] = f'IMEI must be at least {MIN_IMEI_LENGTH} characters'
    elif len(imei) > MAX_IMEI_LENGTH:
        errors['imei'] = f'IMEI must be at most {MAX_IMEI_LENGTH} characters'

    if not _clean(fields.problem_description):
        errors['problem_description'] = 'Problem description is required'
    if not _clean(fields.staff_receive_name):
        errors['staff_receive_name'] = 'Staff name is required'

    try:
        received_on = _coerce_date(fields.date_from_branch, field_name='date_from_branch')
    except ValidationError as exc:
        errors.update(exc.errors)
    else:
        if received_on is None:
            errors['date_from_branch'] = 'Date is required'
    return errors


def create_transfer(db: Session, *, actor: Actor, fields: NewTransfer) -> RepairTransfer:
    assert_can_create(actor)
    errors = validate_new_transfer(fields)
    if errors:
        raise ValidationError('Transfer is missing required details', errors=errors)

    now = utc_now()
    transfer = RepairTransfer(
        id=new_transfer_id(),
        branch_from=actor.branch,
        branch_to=settings.repair_hub_branch,
        customer_name=_clean(fields.customer_name),
        phone_model=_clean(fields.phone_model),
        imei=_clean(fields.imei),
        passcode=_clean(fields.passcode) or None,
        problem_description=_clean(fields.problem_description),
        staff_receive_name=_clean(fields.staff_receive_name),
        date_from_branch=_coerce_date(fields.date_from_branch, field_name='date_from_branch'),
        staff_send_name=actor.name,
        date_sent_to_branch=_today(),
        status=TransferStatus.PENDING,
        updated_by=actor.name,
        updated_at=now,
        created_at=now,
        user_id=actor.id,
    )

    with store_errors(db, 'create transfer'):
        db.add(transfer)
        db.flush()
        append_status_log(
            db,
            transfer_id=transfer.id,
            old_status=None,
            new_status=TransferStatus.PENDING,
            remarks=CREATED_REMARKS,
            actor=actor,
            logged_at=now,
        )
        db.commit()

    logger.info('Transfer %s created by %s: %s -> %s', transfer.id, actor.email, transfer.branch_from, transfer.branch_to)
    return transfer


def get_transfer_for_user(db: Session, *, actor: Actor, transfer_id: str) -> RepairTransfer:
    with store_errors(db, 'load transfer'):
        transfer = db.get(RepairTransfer, transfer_id)
    try:
        return assert_visible(actor, transfer, transfer_id=transfer_id)
    except NotFoundError:
        logger.info('Transfer %s not visible to %s', transfer_id, actor.email)
        raise


def update_status(
    db: Session,
    *,
    actor: Actor,
    transfer_id: str,
    new_status: TransferStatus | str,
    remarks: str | None = None,
    technician_receive_name: str | None = None,
    date_received_by_tech: date | str | None = None,
    date_repair_done: date | str | None = None,
    repair_cost: Decimal | float | int | str | None = None,
) -> RepairTransfer:
    target = parse_status(new_status)
    received_on = _coerce_date(date_received_by_tech, field_name='date_received_by_tech')
    done_on = _coerce_date(date_repair_done, field_name='date_repair_done')
    cost = _coerce_cost(repair_cost)
    note = _clean(remarks) or None

    transfer = get_transfer_for_user(db, actor=actor, transfer_id=transfer_id)
    try:
        assert_can_transition(actor, transfer)
    except PermissionError:
        logger.warning('%s (%s) denied status update on %s', actor.email, actor.role.value, transfer_id)
        raise

    old_status = transfer.status
    transfer.status = target
    if target == TransferStatus.RECEIVED:
        if _clean(technician_receive_name):
            transfer.technician_receive_name = _clean(technician_receive_name)
        transfer.date_received_by_tech = received_on or _today()
    if target == TransferStatus.DONE:
        transfer.date_repair_done = done_on or _today()
        if cost is not None:
            transfer.repair_cost = cost
    if note:
        transfer.remarks = note
    now = utc_now()
    transfer.updated_by = actor.name
    transfer.updated_at = now

    with store_errors(db, 'update transfer status'):
        append_status_log(
            db,
            transfer_id=transfer.id,
            old_status=old_status,
            new_status=target,
            remarks=note,
            actor=actor,
            logged_at=now,
        )
        db.commit()

    logger.info('Transfer %s moved %s -> %s by %s', transfer.id, old_status.value, target.value, actor.email)
    return transfer


def history_for_user(db: Session, *, actor: Actor, transfer_id: str) -> list[StatusLog]:
    transfer = get_transfer_for_user(db, actor=actor, transfer_id=transfer_id)
    return list_status_logs(db, transfer_id=transfer.id)


def list_transfers(db: Session, *, actor: Actor, filters: TransferFilters | None = None) -> list[RepairTransfer]:
    filters = filters or TransferFilters()
    conditions = [visibility_clause(actor)]

    term = _clean(filters.search).lower()
    if term:
        conditions.append(
            or_(
                func.lower(RepairTransfer.customer_name).contains(term, autoescape=True),
                func.lower(RepairTransfer.phone_model).contains(term, autoescape=True),
                func.lower(RepairTransfer.imei).contains(term, autoescape=True),
            )
        )
    if filters.status:
        conditions.append(RepairTransfer.status == parse_status(filters.status))
    branch = _clean(filters.branch)
    if branch:
        conditions.append(or_(RepairTransfer.branch_from == branch, RepairTransfer.branch_to == branch))
    if filters.from_date:
        conditions.append(
            RepairTransfer.created_at >= datetime.combine(filters.from_date, time.min, tzinfo=timezone.utc)
        )
    if filters.to_date:
        conditions.append(
            RepairTransfer.created_at
            < datetime.combine(filters.to_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        )

    query = (
        select(RepairTransfer)
        .where(and_(*conditions))
        .order_by(RepairTransfer.created_at.desc(), RepairTransfer.id.desc())
    )
    if filters.limit is not None:
        query = query.limit(filters.limit)

    with store_errors(db, 'list transfers'):
        return db.execute(query).scalars().all()


def transfer_summary(db: Session, *, actor: Actor, recent: int = 10) -> TransferSummary:
    transfers = list_transfers(db, actor=actor, filters=TransferFilters(limit=recent))
    summary = TransferSummary(total=len(transfers), recent=list(transfers))
    for transfer in transfers:
        if transfer.status == TransferStatus.PENDING:
            summary.pending += 1
        elif transfer.status in {TransferStatus.RECEIVED, TransferStatus.IN_REPAIR}:
            summary.in_repair += 1
        else:
            summary.completed += 1
        if transfer.repair_cost:
            summary.total_cost += transfer.repair_cost
    return summary


def transfer_label_payload(transfer: RepairTransfer) -> dict:
    return {
        'id': transfer.id,
        'customer': transfer.customer_name,
        'model': transfer.phone_model,
        'imei': transfer.imei,
        'status': transfer.status.value,
    }
