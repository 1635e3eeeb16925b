"""Who may write a transfer, and which transfers a user may see.

Write permission and read visibility are separate rules and both are
enforced on every mutation.
"""
from __future__ import annotations

from sqlalchemy import ColumnElement, false, true

from transfer_tracker.auth import Actor
from transfer_tracker.errors import AuthorizationError, NotFoundError
from transfer_tracker.models import RepairTransfer, UserRole
from transfer_tracker.status import TransferStatus, coerce_status


def _coerce_role(role: UserRole | str | None) -> UserRole | None:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def can_transition(role: UserRole | str | None, current_status: TransferStatus | str | None) -> bool:
    """Whether ``role`` may change the status of a record currently in ``current_status``.

    Does not restrict the target status.
    """
    resolved = _coerce_role(role)
    if resolved == UserRole.ADMIN:
        return True
    if resolved == UserRole.HQ_STAFF:
        # HQ staff only ever create records.
        return False
    if resolved == UserRole.TECHNICIAN:
        return coerce_status(current_status) != TransferStatus.PENDING
    return False


def can_create(role: UserRole | str | None) -> bool:
    return _coerce_role(role) == UserRole.HQ_STAFF


def can_view(actor: Actor, transfer: RepairTransfer) -> bool:
    role = _coerce_role(actor.role)
    if role == UserRole.ADMIN:
        return True
    if role == UserRole.HQ_STAFF:
        return transfer.branch_from == actor.branch
    if role == UserRole.TECHNICIAN:
        return transfer.branch_to == actor.branch
    return False


def visibility_clause(actor: Actor) -> ColumnElement[bool]:
    role = _coerce_role(actor.role)
    if role == UserRole.ADMIN:
        return true()
    if role == UserRole.HQ_STAFF:
        return RepairTransfer.branch_from == actor.branch
    if role == UserRole.TECHNICIAN:
        return RepairTransfer.branch_to == actor.branch
    return false()


def assert_visible(actor: Actor, transfer: RepairTransfer | None, *, transfer_id: str) -> RepairTransfer:
    if transfer is None or not can_view(actor, transfer):
        raise NotFoundError(f'Transfer {transfer_id} not found')
    return transfer


def assert_can_transition(actor: Actor, transfer: RepairTransfer) -> None:
    if not can_transition(actor.role, transfer.status):
        raise AuthorizationError(
            f'{getattr(actor.role, "value", actor.role)} users cannot update transfers in status {coerce_status(transfer.status).value}'
        )


def assert_can_create(actor: Actor) -> None:
    if not can_create(actor.role):
        raise AuthorizationError('Only HQ Staff can create new transfers')
