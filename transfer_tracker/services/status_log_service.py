"""Append-only status history for repair transfers.

Entries are written in the same unit of work as the record change they
describe; nothing here commits. There is no update or delete.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from transfer_tracker.auth import Actor
from transfer_tracker.db import store_errors
from transfer_tracker.models import RepairTransfer, StatusLog, utc_now
from transfer_tracker.status import TransferStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerMismatch:
    transfer_id: str
    record_status: TransferStatus
    ledger_status: TransferStatus | None


def new_log_id() -> str:
    return f'log_{uuid4().hex}'


def append_status_log(
    db: Session,
    *,
    transfer_id: str,
    old_status: TransferStatus | None,
    new_status: TransferStatus,
    remarks: str | None,
    actor: Actor,
    logged_at: datetime | None = None,
) -> StatusLog:
    entry = StatusLog(
        id=new_log_id(),
        transfer_id=transfer_id,
        old_status=old_status,
        new_status=new_status,
        remarks=remarks,
        updated_by=actor.name,
        user_id=actor.id,
        updated_at=logged_at or utc_now(),
    )
    db.add(entry)
    return entry


def list_status_logs(db: Session, *, transfer_id: str) -> list[StatusLog]:
    with store_errors(db, 'load status history'):
        return db.execute(
            select(StatusLog)
            .where(StatusLog.transfer_id == transfer_id)
            .order_by(StatusLog.updated_at.desc(), StatusLog.seq.desc())
        ).scalars().all()


def find_ledger_mismatches(db: Session) -> list[LedgerMismatch]:
    """Transfers whose current status is not the outcome of their latest ledger entry.

    A record updated without its log entry shows up here, as does a record
    with no entries at all.
    """
    latest = (
        select(StatusLog.transfer_id, func.max(StatusLog.seq).label('last_seq'))
        .group_by(StatusLog.transfer_id)
        .subquery()
    )
    query = (
        select(RepairTransfer.id, RepairTransfer.status, StatusLog.new_status)
        .outerjoin(latest, latest.c.transfer_id == RepairTransfer.id)
        .outerjoin(StatusLog, StatusLog.seq == latest.c.last_seq)
        .where(or_(StatusLog.seq.is_(None), StatusLog.new_status != RepairTransfer.status))
        .order_by(RepairTransfer.created_at.asc(), RepairTransfer.id.asc())
    )
    with store_errors(db, 'check status history'):
        rows = db.execute(query).all()

    mismatches = [
        LedgerMismatch(transfer_id=row[0], record_status=row[1], ledger_status=row[2])
        for row in rows
    ]
    if mismatches:
        logger.warning('%d transfer(s) disagree with their status history', len(mismatches))
    return mismatches
