"""
Coach and student registry.

Holds each coach's hourly rate and cached outstanding salary, and the student
roster that attendance marking checks against. Rate changes are never applied
retroactively: sessions are priced when they are billed.
"""
import logging
from decimal import Decimal
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from academy.core.config import settings
from academy.core.exceptions import Conflict, NotFound, PersistenceFailure, ValidationError
from academy.core.timeutils import local_today
from academy.models.attendance import AttendanceRecord
from academy.models.domain import Coach, Student
from academy.schemas.coach import CoachCreate, CoachUpdate
from academy.schemas.student import StudentCreate

logger = logging.getLogger(__name__)

COACH_CODE_PREFIX = "COA"
STUDENT_CODE_PREFIX = "STU"


async def _next_code(db: AsyncSession, model, prefix: str) -> str:
    """
    Next sequential code such as COA0001.

    Derived from the highest id rather than a row count so deleted rows never
    cause a code to be handed out twice.
    """
    result = await db.execute(select(func.max(model.id)))
    last_id = result.scalar() or 0
    return f"{prefix}{last_id + 1:04d}"


async def get_coach(db: AsyncSession, coach_id: int) -> Coach:
    result = await db.execute(select(Coach).where(Coach.id == coach_id))
    coach = result.scalar_one_or_none()
    if not coach:
        raise NotFound("Coach not found")
    return coach


async def get_coach_for_user(db: AsyncSession, user_id: int) -> Coach:
    result = await db.execute(select(Coach).where(Coach.user_id == user_id))
    coach = result.scalar_one_or_none()
    if not coach:
        raise NotFound("Coach not found")
    return coach


async def list_coaches(db: AsyncSession, active: Optional[bool] = None) -> list[Coach]:
    query = select(Coach)
    if active is not None:
        query = query.where(Coach.active == active)
    result = await db.execute(query.order_by(Coach.id))
    return list(result.scalars().all())


async def count_coaches(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Coach.id)))
    return result.scalar() or 0


async def _ensure_email_free(
    db: AsyncSession, model, email: str, label: str, exclude_id: Optional[int] = None
) -> None:
    query = select(model.id).where(model.email == email)
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query)
    if result.first():
        raise Conflict(f"Email already in use by another {label}")


async def create_coach(db: AsyncSession, data: CoachCreate) -> Coach:
    await _ensure_email_free(db, Coach, data.email, "coach")

    coach = Coach(
        code=await _next_code(db, Coach, COACH_CODE_PREFIX),
        name=data.name,
        email=data.email,
        hourly_rate=data.hourly_rate or Decimal(settings.DEFAULT_HOURLY_RATE),
        joining_date=data.joining_date or local_today(),
        user_id=data.user_id,
        outstanding_salary=Decimal("0"),
    )
    db.add(coach)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Coach code, email or user is already taken")
    await db.refresh(coach)
    logger.info(f"Coach created: {coach.code} ({coach.email})")
    return coach


async def update_coach(db: AsyncSession, coach_id: int, data: CoachUpdate) -> Coach:
    coach = await get_coach(db, coach_id)

    if data.email and data.email != coach.email:
        await _ensure_email_free(db, Coach, data.email, "coach", exclude_id=coach_id)

    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(coach, field, value)

    await db.commit()
    await db.refresh(coach)
    return coach


async def set_hourly_rate(db: AsyncSession, coach_id: int, rate: Decimal) -> Coach:
    if rate is None or rate <= 0:
        raise ValidationError("Hourly rate must be positive")

    coach = await get_coach(db, coach_id)
    previous = coach.hourly_rate
    coach.hourly_rate = rate
    await db.commit()
    await db.refresh(coach)
    logger.info(f"Hourly rate for coach {coach.code} changed from {previous} to {rate}")
    return coach


async def get_outstanding(db: AsyncSession, coach_id: int) -> Decimal:
    coach = await get_coach(db, coach_id)
    return Decimal(coach.outstanding_salary)


async def delete_coach(db: AsyncSession, coach_id: int) -> None:
    """Delete a coach that has no students, no balance and no attendance history."""
    coach = await get_coach(db, coach_id)

    students_result = await db.execute(select(func.count(Student.id)).where(Student.coach_id == coach_id))
    if students_result.scalar():
        raise ValidationError("Cannot delete coach with assigned students. Please reassign students first.")

    if coach.outstanding_salary > 0:
        raise ValidationError("Cannot delete coach with outstanding salary. Please clear payment first.")

    attendance_result = await db.execute(
        select(func.count(AttendanceRecord.id)).where(AttendanceRecord.coach_id == coach_id)
    )
    if attendance_result.scalar():
        raise ValidationError(
            "Cannot delete coach with attendance records. Please archive the coach instead."
        )

    await db.delete(coach)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise PersistenceFailure("Failed to delete coach")
    logger.info(f"Coach deleted: {coach.code}")


async def get_student(db: AsyncSession, student_id: int) -> Student:
    result = await db.execute(select(Student).where(Student.id == student_id))
    student = result.scalar_one_or_none()
    if not student:
        raise NotFound("Student not found")
    return student


async def get_student_for_user(db: AsyncSession, user_id: int) -> Student:
    result = await db.execute(select(Student).where(Student.user_id == user_id))
    student = result.scalar_one_or_none()
    if not student:
        raise NotFound("Student profile not found for this user")
    return student


async def count_students(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Student.id)))
    return result.scalar() or 0


async def list_students(db: AsyncSession, coach_id: Optional[int] = None) -> list[Student]:
    query = select(Student)
    if coach_id is not None:
        query = query.where(Student.coach_id == coach_id)
    result = await db.execute(query.order_by(Student.id))
    return list(result.scalars().all())


async def create_student(db: AsyncSession, data: StudentCreate) -> Student:
    if data.coach_id is not None:
        await get_coach(db, data.coach_id)
    await _ensure_email_free(db, Student, data.email, "student")

    student = Student(
        code=await _next_code(db, Student, STUDENT_CODE_PREFIX),
        name=data.name,
        email=data.email,
        coach_id=data.coach_id,
        joining_date=data.joining_date or local_today(),
        user_id=data.user_id,
    )
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Student code, email or user is already taken")
    await db.refresh(student)
    return student


async def assign_student(db: AsyncSession, student_id: int, coach_id: Optional[int]) -> Student:
    student = await get_student(db, student_id)
    if coach_id is not None:
        await get_coach(db, coach_id)
    student.coach_id = coach_id
    await db.commit()
    await db.refresh(student)
    return student
