import logging
import math
from typing import Annotated, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from academy.core.config import settings
from academy.core.db import get_db, get_session_factory
from academy.core.exceptions import AcademyError
from academy.core.timeutils import local_today
from academy.models.enums import SettlementStatus
from academy.schemas.coach import CoachRead
from academy.schemas.common import DataResponse, PaginationMeta
from academy.schemas.salary import (
    SettlementRead, PayRequest, AccrueRequest, BatchResultRead, TotalPending
)
from academy.deps import require_admin
from academy.services import settlement as settlement_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/salary", tags=["Salary"], dependencies=[Depends(require_admin)])

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


@router.get("/total-pending", response_model=DataResponse[TotalPending])
async def get_total_pending(db: Annotated[AsyncSession, Depends(get_db)]):
    """Sum of the cached outstanding balances of all coaches"""
    total = await settlement_service.get_total_pending(db)
    return DataResponse(data=TotalPending(total=float(settlement_service.round_money(total)), currency=settings.CURRENCY))


@router.get("/settlements", response_model=DataResponse[list[SettlementRead]])
async def get_settlements(
    db: Annotated[AsyncSession, Depends(get_db)],
    coach_id: Optional[int] = None,
    status: Optional[SettlementStatus] = None,
    year: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    settlements, total = await settlement_service.list_settlements(
        db, coach_id=coach_id, status=status, year=year, page=page, page_size=page_size
    )
    return DataResponse(
        data=[SettlementRead.model_validate(s) for s in settlements],
        meta=PaginationMeta(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        ),
    )


@router.post("/pay", response_model=DataResponse[Optional[SettlementRead]])
async def pay_salary(
    data: PayRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Pay one coach everything currently unpaid.

    Returns data=null when the coach has a balance but no unpaid sessions;
    nothing is written in that case.
    """
    try:
        settlement = await settlement_service.pay_settlement(db, data.coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    if settlement is None:
        return DataResponse(data=None)
    return DataResponse(data=SettlementRead.model_validate(settlement))


@router.post("/pay-all", response_model=DataResponse[BatchResultRead])
async def pay_all_salaries(session_factory: SessionFactory):
    """Pay every coach with an outstanding balance; per-coach failures are listed, not raised."""
    result = await settlement_service.pay_all_outstanding(session_factory)
    return DataResponse(data=BatchResultRead.model_validate(result))


@router.post("/accrue", response_model=DataResponse[BatchResultRead])
async def accrue_salaries(data: AccrueRequest, session_factory: SessionFactory):
    """
    Manual run of the monthly accrual for one month (defaults to the current month).

    A run before the month has ended is a partial accrual: later runs for the
    same month, including the scheduled one, add only the sessions recorded
    since.
    """
    today = local_today()
    try:
        as_of = date(data.year or today.year, data.month or today.month, 1)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Manual salary accrual requested for {as_of:%Y-%m}")
    result = await settlement_service.accrue_monthly(session_factory, as_of=as_of)
    return DataResponse(data=BatchResultRead.model_validate(result))


@router.post("/coaches/{coach_id}/recalculate", response_model=DataResponse[CoachRead])
async def recalculate_outstanding(
    coach_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Resynchronize a coach's cached balance with the value of their unpaid sessions."""
    try:
        coach = await settlement_service.recalculate_outstanding(db, coach_id)
    except AcademyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return DataResponse(data=CoachRead.model_validate(coach))
