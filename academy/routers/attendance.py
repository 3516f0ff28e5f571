from typing import Annotated, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from academy.core.db import get_db
from academy.core.exceptions import AcademyError
from academy.models.auth import User
from academy.models.domain import Coach
from academy.schemas.attendance import AttendanceMark, AttendanceRead
from academy.schemas.common import DataResponse
from academy.schemas.salary import SalaryReportRead
from academy.deps import CurrentUser, is_admin
from academy.services.attendance import mark_attendance, get_student_attendance
from academy.services.settlement import get_salary_report

router = APIRouter(prefix="/attendance", tags=["Attendance"])


async def _ensure_acting_for_coach(db: AsyncSession, user: User, coach_id: int) -> None:
    """Coaches act only for themselves; admins act for anyone."""
    if is_admin(user):
        return
    result = await db.execute(select(Coach.id).where(Coach.user_id == user.id))
    own_coach_id = result.scalar_one_or_none()
    if own_coach_id != coach_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this coach")


@router.post("/mark", response_model=DataResponse[AttendanceRead], status_code=status.HTTP_201_CREATED)
async def mark_attendance_endpoint(
    data: AttendanceMark,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await _ensure_acting_for_coach(db, user, data.coach_id)
    try:
        record = await mark_attendance(db, data)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=AttendanceRead.model_validate(record))


@router.get("/student/{student_id}", response_model=DataResponse[list[AttendanceRead]])
async def get_student_attendance_endpoint(
    student_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    """Attendance history of a student, newest first. The range applies only when both ends are given."""
    try:
        records = await get_student_attendance(db, student_id, start_date, end_date)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=[AttendanceRead.model_validate(r) for r in records])


@router.get("/salary/{coach_id}", response_model=DataResponse[SalaryReportRead])
async def get_salary_report_endpoint(
    coach_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
):
    """
    Salary breakdown of a coach for one month.

    Every present session of the month is listed with its paid flag; the
    totals and calculatedSalary cover the unpaid ones only.
    """
    await _ensure_acting_for_coach(db, user, coach_id)
    try:
        report = await get_salary_report(db, coach_id, month, year)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=SalaryReportRead.model_validate(report))
