import datetime
from sqlalchemy import Date, Integer, Text, Enum as SAEnum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from academy.core.db import Base
from academy.models.base import TimestampMixin
from academy.models.enums import AttendanceStatus


class AttendanceRecord(Base, TimestampMixin):
    """One attendance fact per student per calendar day. Never updated once written."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        Index("ix_attendance_coach_date", "coach_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        SAEnum(AttendanceStatus, native_enum=False, length=20),
        default=AttendanceStatus.ABSENT,
        nullable=False,
        index=True,
    )
    session_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # minutes
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False)

    student: Mapped["Student"] = relationship("Student")
    coach: Mapped["Coach"] = relationship("Coach")

    @property
    def duration_hours(self) -> float:
        return round(self.session_duration / 60, 2)
