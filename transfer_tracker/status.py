from __future__ import annotations

from decimal import Decimal
from enum import Enum

from transfer_tracker.errors import ValidationError


class TransferStatus(str, Enum):
    PENDING = 'Pending'
    RECEIVED = 'Received'
    IN_REPAIR = 'In Repair'
    DONE = 'Done'
    RETURNED = 'Returned'


# Declaration order is the lifecycle order.
STATUS_ORDER: tuple[TransferStatus, ...] = tuple(TransferStatus)

STATUS_COLORS = {
    TransferStatus.PENDING: 'bg-yellow-100 text-yellow-800 border-yellow-200',
    TransferStatus.RECEIVED: 'bg-blue-100 text-blue-800 border-blue-200',
    TransferStatus.IN_REPAIR: 'bg-purple-100 text-purple-800 border-purple-200',
    TransferStatus.DONE: 'bg-green-100 text-green-800 border-green-200',
    TransferStatus.RETURNED: 'bg-gray-100 text-gray-800 border-gray-200',
}
DEFAULT_STATUS_COLOR = 'bg-gray-100 text-gray-800 border-gray-200'


def coerce_status(value: TransferStatus | str | None) -> TransferStatus | None:
    if isinstance(value, TransferStatus):
        return value
    try:
        return TransferStatus(value)
    except ValueError:
        return None


def parse_status(value: TransferStatus | str | None) -> TransferStatus:
    status = coerce_status(value)
    if status is None:
        allowed = ', '.join(s.value for s in STATUS_ORDER)
        raise ValidationError('Invalid status', errors={'status': f'Status must be one of: {allowed}'})
    return status


def next_status(current: TransferStatus | str | None) -> TransferStatus | None:
    status = coerce_status(current)
    if status is None:
        return None
    idx = STATUS_ORDER.index(status)
    if idx == len(STATUS_ORDER) - 1:
        return None
    return STATUS_ORDER[idx + 1]


def status_color(status: TransferStatus | str | None) -> str:
    coerced = coerce_status(status)
    if coerced is None:
        return DEFAULT_STATUS_COLOR
    return STATUS_COLORS.get(coerced, DEFAULT_STATUS_COLOR)


def format_currency(amount: Decimal | float | int | None) -> str:
    if not amount:
        return 'RM 0.00'
    return f'RM {Decimal(str(amount)):.2f}'

