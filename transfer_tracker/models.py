from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from transfer_tracker.status import TransferStatus


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


TRANSFER_STATUS_TYPE = SQLEnum(TransferStatus, name='transfer_status', values_callable=_enum_values)


class Base(DeclarativeBase):
    pass


class UserRole(str, Enum):
    ADMIN = 'Admin'
    HQ_STAFF = 'HQ Staff'
    TECHNICIAN = 'Technician'


class User(Base):
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name='user_role', values_callable=_enum_values), nullable=False
    )
    branch: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )


class RepairTransfer(Base):
    __tablename__ = 'repair_transfers'
    __table_args__ = (
        CheckConstraint('repair_cost IS NULL OR repair_cost >= 0', name='repair_transfers_cost_non_negative_ck'),
        Index('ix_repair_transfers_branch_from', 'branch_from'),
        Index('ix_repair_transfers_branch_to', 'branch_to'),
        Index('ix_repair_transfers_created_at', 'created_at'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    branch_from: Mapped[str] = mapped_column(Text, nullable=False)
    branch_to: Mapped[str] = mapped_column(Text, nullable=False)

    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone_model: Mapped[str] = mapped_column(Text, nullable=False)
    imei: Mapped[str] = mapped_column(String(64), nullable=False)
    passcode: Mapped[str | None] = mapped_column(Text)
    problem_description: Mapped[str] = mapped_column(Text, nullable=False)

    staff_receive_name: Mapped[str] = mapped_column(Text, nullable=False)
    date_from_branch: Mapped[date] = mapped_column(Date, nullable=False)
    staff_send_name: Mapped[str] = mapped_column(Text, nullable=False)
    date_sent_to_branch: Mapped[date] = mapped_column(Date, nullable=False)

    technician_receive_name: Mapped[str | None] = mapped_column(Text)
    date_received_by_tech: Mapped[date | None] = mapped_column(Date)
    date_repair_done: Mapped[date | None] = mapped_column(Date)
    repair_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    status: Mapped[TransferStatus] = mapped_column(TRANSFER_STATUS_TYPE, nullable=False, default=TransferStatus.PENDING)
    remarks: Mapped[str | None] = mapped_column(Text)

    updated_by: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey('users.id'), nullable=False)


class StatusLog(Base):
    __tablename__ = 'status_logs'
    __table_args__ = (Index('ix_status_logs_transfer_id_updated_at', 'transfer_id', 'updated_at'),)

    # Insertion sequence breaks ties between entries written within the same clock tick.
    seq: Mapped[int] = mapped_column(BigInteger().with_variant(Integer(), 'sqlite'), primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    transfer_id: Mapped[str] = mapped_column(String(64), ForeignKey('repair_transfers.id'), nullable=False)
    old_status: Mapped[TransferStatus | None] = mapped_column(TRANSFER_STATUS_TYPE)
    new_status: Mapped[TransferStatus] = mapped_column(TRANSFER_STATUS_TYPE, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    updated_by: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey('users.id'), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
