from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from transfer_tracker.models import UserRole
from transfer_tracker.status import TransferStatus


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: UserRole
    branch: str


class TransferCreate(BaseModel):
    # Left permissive so missing fields are reported together by the service.
    customer_name: str = ''
    phone_model: str = ''
    imei: str = ''
    passcode: str | None = None
    problem_description: str = ''
    staff_receive_name: str = ''
    date_from_branch: str | None = None


class StatusUpdate(BaseModel):
    status: str
    remarks: str | None = None
    technician_receive_name: str | None = None
    date_received_by_tech: str | None = None
    date_repair_done: str | None = None
    repair_cost: Decimal | None = None


class TransferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    branch_from: str
    branch_to: str
    customer_name: str
    phone_model: str
    imei: str
    passcode: str | None = None
    problem_description: str
    staff_receive_name: str
    date_from_branch: date
    staff_send_name: str
    date_sent_to_branch: date
    technician_receive_name: str | None = None
    date_received_by_tech: date | None = None
    date_repair_done: date | None = None
    repair_cost: Decimal | None = None
    status: TransferStatus
    remarks: str | None = None
    updated_by: str
    updated_at: datetime
    created_at: datetime
    user_id: str


class TransferDetail(TransferOut):
    can_update: bool
    next_status: TransferStatus | None = None
    status_color: str


class StatusLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transfer_id: str
    old_status: TransferStatus | None = None
    new_status: TransferStatus
    remarks: str | None = None
    updated_by: str
    user_id: str
    updated_at: datetime


class TransferSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    pending: int
    in_repair: int
    completed: int
    total_cost: Decimal
    total_cost_display: str
    recent: list[TransferOut]


class TransferLabel(BaseModel):
    id: str
    customer: str
    model: str
    imei: str
    status: str
