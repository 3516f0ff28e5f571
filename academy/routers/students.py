from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from academy.core.db import get_db
from academy.core.exceptions import AcademyError
from academy.schemas.attendance import AttendancePeriod, OwnAttendanceRead
from academy.schemas.common import DataResponse
from academy.schemas.student import StudentRead, StudentCreate, StudentCoachAssign, StudentCount
from academy.deps import require_admin, CurrentUser
from academy.services import attendance as attendance_service
from academy.services import coach_registry

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("", response_model=DataResponse[list[StudentRead]], dependencies=[Depends(require_admin)])
async def get_students(
    db: Annotated[AsyncSession, Depends(get_db)],
    coach_id: Optional[int] = None,
):
    students = await coach_registry.list_students(db, coach_id=coach_id)
    return DataResponse(data=[StudentRead.model_validate(s) for s in students])


@router.post(
    "",
    response_model=DataResponse[StudentRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_student(
    data: StudentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        student = await coach_registry.create_student(db, data)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=StudentRead.model_validate(student))


@router.get("/attendance", response_model=DataResponse[OwnAttendanceRead])
async def get_my_attendance(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    period: Optional[AttendancePeriod] = Query(None, alias="filter"),
):
    """Attendance of the logged-in student: filter=week, filter=month, or the current month"""
    try:
        own = await attendance_service.get_own_attendance(db, user.id, period)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=OwnAttendanceRead.model_validate(own))


@router.get("/count", response_model=DataResponse[StudentCount], dependencies=[Depends(require_admin)])
async def get_student_count(db: Annotated[AsyncSession, Depends(get_db)]):
    return DataResponse(data=StudentCount(count=await coach_registry.count_students(db)))


@router.get("/{student_id}", response_model=DataResponse[StudentRead], dependencies=[Depends(require_admin)])
async def get_student(
    student_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        student = await coach_registry.get_student(db, student_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=StudentRead.model_validate(student))


@router.put(
    "/{student_id}/coach", response_model=DataResponse[StudentRead], dependencies=[Depends(require_admin)]
)
async def assign_student_coach(
    student_id: int,
    data: StudentCoachAssign,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Assign the student to a coach, or unassign with coach_id null"""
    try:
        student = await coach_registry.assign_student(db, student_id, data.coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=StudentRead.model_validate(student))
