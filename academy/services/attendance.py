import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from academy.core.config import settings
from academy.core.exceptions import (
    DuplicateAttendance, NotFound, NotYourStudent, PersistenceFailure, ValidationError
)
from academy.core.timeutils import local_today, one_month_before
from academy.models.attendance import AttendanceRecord
from academy.models.domain import Coach, Student
from academy.models.enums import AttendanceStatus
from academy.schemas.attendance import AttendanceMark, AttendanceRead, AttendancePeriod
from academy.services.coach_registry import get_student_for_user

logger = logging.getLogger(__name__)


async def _find_for_day(db: AsyncSession, student_id: int, day: date) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            and_(AttendanceRecord.student_id == student_id, AttendanceRecord.date == day)
        )
    )
    return result.scalar_one_or_none()


def _duplicate(existing: AttendanceRecord) -> DuplicateAttendance:
    return DuplicateAttendance(
        "Attendance already marked for this student on this date",
        extra={"existing_attendance": AttendanceRead.model_validate(existing).model_dump(mode="json")},
    )


async def mark_attendance(db: AsyncSession, data: AttendanceMark) -> AttendanceRecord:
    """
    Record one attendance fact for a student on a calendar day.

    Present sessions default to DEFAULT_SESSION_DURATION minutes; absent and
    leave always carry 0 so they can never be billed.
    """
    day = data.date or local_today()
    if day > local_today():
        raise ValidationError("Attendance date cannot be in the future")

    if data.status == AttendanceStatus.PRESENT:
        duration = settings.DEFAULT_SESSION_DURATION if data.session_duration is None else data.session_duration
        if duration <= 0:
            raise ValidationError("Session duration must be a positive number of minutes")
    else:
        duration = 0

    coach_result = await db.execute(select(Coach).where(Coach.id == data.coach_id))
    if not coach_result.scalar_one_or_none():
        raise NotFound(f"Coach with ID {data.coach_id} not found")

    student_result = await db.execute(select(Student).where(Student.id == data.student_id))
    student = student_result.scalar_one_or_none()
    if not student:
        raise NotFound(f"Student with ID {data.student_id} not found")
    if student.coach_id != data.coach_id:
        raise NotYourStudent("Student not assigned to you")

    existing = await _find_for_day(db, data.student_id, day)
    if existing:
        raise _duplicate(existing)

    record = AttendanceRecord(
        student_id=data.student_id,
        coach_id=data.coach_id,
        date=day,
        status=data.status,
        session_duration=duration,
        notes=data.notes,
    )
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against another request for the same student/day
        await db.rollback()
        existing = await _find_for_day(db, data.student_id, day)
        if existing:
            raise _duplicate(existing)
        raise PersistenceFailure("Failed to mark attendance")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to mark attendance for student {data.student_id}: {e}")
        raise PersistenceFailure("Failed to mark attendance")

    await db.refresh(record)
    logger.info(
        f"Attendance marked: student={record.student_id} coach={record.coach_id} "
        f"date={record.date} status={record.status.value} minutes={record.session_duration}"
    )
    return record


async def get_student_attendance(
    db: AsyncSession,
    student_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[AttendanceRecord]:
    student_result = await db.execute(select(Student).where(Student.id == student_id))
    if not student_result.scalar_one_or_none():
        raise NotFound(f"Student with ID {student_id} not found")

    query = select(AttendanceRecord).where(AttendanceRecord.student_id == student_id)
    # The range only applies when both ends are given
    if start and end:
        if start > end:
            raise ValidationError("Start date must not be after end date")
        query = query.where(AttendanceRecord.date >= start, AttendanceRecord.date <= end)

    result = await db.execute(query.order_by(AttendanceRecord.date.desc()))
    return list(result.scalars().all())


@dataclass
class AttendanceStats:
    present: int
    absent: int
    leave: int
    total_days: int
    percentage: float
    total_duration: int
    start_date: date
    end_date: date


@dataclass
class OwnAttendance:
    attendance: list[AttendanceRecord]
    stats: AttendanceStats


def _period_bounds(period: Optional[AttendancePeriod], today: date) -> tuple[date, int]:
    """Start of the window and the number of days attendance is measured against."""
    if period == AttendancePeriod.WEEK:
        return today - timedelta(days=7), 7
    if period == AttendancePeriod.MONTH:
        start = one_month_before(today)
        return start, (today - start).days + 1
    return today.replace(day=1), calendar.monthrange(today.year, today.month)[1]


async def get_own_attendance(
    db: AsyncSession,
    user_id: int,
    period: Optional[AttendancePeriod] = None,
    today: Optional[date] = None,
) -> OwnAttendance:
    """
    Attendance of the student profile linked to the user, newest first.

    Without a period the window is the current calendar month, and the
    percentage is measured against all of its days.
    """
    student = await get_student_for_user(db, user_id)
    today = today or local_today()
    start, total_days = _period_bounds(period, today)

    result = await db.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.date >= start,
            AttendanceRecord.date <= today,
        )
        .order_by(AttendanceRecord.date.desc())
    )
    records = list(result.scalars().all())

    present = [r for r in records if r.status == AttendanceStatus.PRESENT]
    stats = AttendanceStats(
        present=len(present),
        absent=sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
        leave=sum(1 for r in records if r.status == AttendanceStatus.LEAVE),
        total_days=total_days,
        percentage=round(len(present) / total_days * 100, 2) if total_days else 0.0,
        total_duration=sum(r.session_duration for r in present),
        start_date=start,
        end_date=today,
    )
    return OwnAttendance(attendance=records, stats=stats)
