from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from academy.core.db import get_db
from academy.core.exceptions import AcademyError
from academy.schemas.coach import (
    CoachRead, CoachCreate, CoachUpdate, HourlyRateUpdate, CoachOutstanding, CoachCount
)
from academy.schemas.common import DataResponse, MessageResponse
from academy.deps import require_admin, CurrentCoach
from academy.services import coach_registry

router = APIRouter(prefix="/coaches", tags=["Coaches"])


@router.get("", response_model=DataResponse[list[CoachRead]], dependencies=[Depends(require_admin)])
async def get_coaches(
    db: Annotated[AsyncSession, Depends(get_db)],
    active: Optional[bool] = None,
):
    coaches = await coach_registry.list_coaches(db, active=active)
    return DataResponse(data=[CoachRead.model_validate(c) for c in coaches])


@router.get("/me", response_model=DataResponse[CoachRead])
async def get_my_coach_profile(coach: CurrentCoach):
    """Coach profile of the authenticated user"""
    return DataResponse(data=CoachRead.model_validate(coach))


@router.get("/count", response_model=DataResponse[CoachCount], dependencies=[Depends(require_admin)])
async def get_coach_count(db: Annotated[AsyncSession, Depends(get_db)]):
    return DataResponse(data=CoachCount(count=await coach_registry.count_coaches(db)))


@router.post(
    "",
    response_model=DataResponse[CoachRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_coach(
    data: CoachCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        coach = await coach_registry.create_coach(db, data)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachRead.model_validate(coach))


@router.get("/{coach_id}", response_model=DataResponse[CoachRead], dependencies=[Depends(require_admin)])
async def get_coach(
    coach_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        coach = await coach_registry.get_coach(db, coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachRead.model_validate(coach))


@router.get(
    "/{coach_id}/outstanding",
    response_model=DataResponse[CoachOutstanding],
    dependencies=[Depends(require_admin)],
)
async def get_coach_outstanding(
    coach_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        outstanding = await coach_registry.get_outstanding(db, coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachOutstanding(coach_id=coach_id, outstanding_salary=float(outstanding)))


@router.put(
    "/{coach_id}/hourly-rate",
    response_model=DataResponse[CoachRead],
    dependencies=[Depends(require_admin)],
)
async def update_hourly_rate(
    coach_id: int,
    data: HourlyRateUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Change the hourly rate. Sessions already paid keep the rate they were paid at."""
    try:
        coach = await coach_registry.set_hourly_rate(db, coach_id, data.hourly_rate)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachRead.model_validate(coach))


@router.put("/{coach_id}", response_model=DataResponse[CoachRead], dependencies=[Depends(require_admin)])
async def update_coach(
    coach_id: int,
    data: CoachUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        coach = await coach_registry.update_coach(db, coach_id, data)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachRead.model_validate(coach))


@router.delete("/{coach_id}", response_model=DataResponse[MessageResponse], dependencies=[Depends(require_admin)])
async def delete_coach(
    coach_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        await coach_registry.delete_coach(db, coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=MessageResponse(message="Coach deleted successfully"))
