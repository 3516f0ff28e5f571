from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Enum as SAEnum, ForeignKey, Index, Table, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from academy.core.db import Base
from academy.models.base import TimestampMixin
from academy.models.enums import SettlementStatus


# attendance_id is unique: a session can be linked to one paid settlement, ever.
settlement_sessions = Table(
    "settlement_sessions",
    Base.metadata,
    Column("settlement_id", ForeignKey("salary_settlements.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "attendance_id",
        ForeignKey("attendance_records.id", ondelete="RESTRICT"),
        primary_key=True,
        unique=True,
    ),
)


class SalarySettlement(Base, TimestampMixin):
    __tablename__ = "salary_settlements"
    __table_args__ = (
        Index("ix_salary_settlements_coach_period", "coach_id", "month", "year"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_salary_settlements_month"),
        CheckConstraint("amount >= 0", name="ck_salary_settlements_amount"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    status: Mapped[SettlementStatus] = mapped_column(
        SAEnum(SettlementStatus, native_enum=False, length=20),
        default=SettlementStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False)

    coach: Mapped["Coach"] = relationship("Coach")
    paid_sessions: Mapped[list["AttendanceRecord"]] = relationship(
        "AttendanceRecord", secondary=settlement_sessions, lazy="selectin", order_by="AttendanceRecord.id"
    )

    @property
    def paid_session_ids(self) -> list[int]:
        return [session.id for session in self.paid_sessions]
