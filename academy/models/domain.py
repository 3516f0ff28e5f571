from datetime import date
from decimal import Decimal
from sqlalchemy import String, Date, Boolean, Numeric, CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from academy.core.db import Base
from academy.models.base import TimestampMixin


class Coach(Base, TimestampMixin):
    __tablename__ = "coaches"
    __table_args__ = (
        CheckConstraint("hourly_rate > 0", name="ck_coaches_hourly_rate_positive"),
        CheckConstraint("outstanding_salary >= 0", name="ck_coaches_outstanding_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    # Human-readable identifier: COA0001, COA0002, ...
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    joining_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Cached money owed; the billing rule lives in services.settlement
    outstanding_salary: Mapped[Decimal] = mapped_column(
        Numeric(18, 6), default=Decimal("0"), server_default="0", nullable=False
    )

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), unique=True, nullable=True
    )

    user: Mapped["User"] = relationship("User")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="coach", passive_deletes=True)


class Student(Base, TimestampMixin):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    # Human-readable identifier: STU0001, STU0002, ...
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    joining_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    coach_id: Mapped[int | None] = mapped_column(
        ForeignKey("coaches.id", ondelete="SET NULL"), nullable=True, index=True
    )

    user: Mapped["User"] = relationship("User")
    coach: Mapped["Coach"] = relationship("Coach", back_populates="students")
