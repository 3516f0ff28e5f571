"""
Salary settlement engine.

Turns present attendance sessions into money owed to a coach and records the
payments that settle it.

Billing rule: a session is billable while it is present, has a positive
duration and is not linked to any *paid* settlement of the coach, whatever
month that settlement was booked in. compute_unpaid_sessions() is the only
place that rule is written down; paying, recalculating the cached balance and
reporting all go through it.

Every operation that reads unpaid sessions and then writes a settlement or a
balance runs under coach_locks (in-process) and a row lock on the coach
(SELECT ... FOR UPDATE), so two pay requests for the same coach, or a pay
request racing the monthly accrual, are serialized. The UNIQUE attendance_id
on settlement_sessions backs this up in the database.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Awaitable, Callable, Iterable, Optional
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from academy.core.config import settings
from academy.core.exceptions import (
    NotFound, NothingToPay, PersistenceFailure, SettlementConflict, ValidationError
)
from academy.core.locks import coach_locks
from academy.core.timeutils import local_now, local_today, month_bounds
from academy.models.attendance import AttendanceRecord
from academy.models.domain import Coach
from academy.models.enums import AttendanceStatus, SettlementStatus
from academy.models.payroll import SalarySettlement, settlement_sessions
from academy.services.coach_registry import get_coach

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal(60)
CENT = Decimal("0.01")


@dataclass
class CoachFailure:
    coach_id: int
    error: str
    message: str


@dataclass
class BatchResult:
    """Outcome of a run over many coaches; one coach's failure never hides the others."""

    settlements: list[SalarySettlement] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failures: list[CoachFailure] = field(default_factory=list)

    def record_failure(self, coach_id: int, exc: BaseException) -> None:
        self.failures.append(CoachFailure(coach_id=coach_id, error=type(exc).__name__, message=str(exc)))


@dataclass
class SessionLine:
    id: int
    date: date
    session_duration: int
    hours: float
    is_paid: bool


@dataclass
class SalaryReport:
    coach_id: int
    coach_name: str
    month: int
    year: int
    total_sessions: int
    total_hours: float
    hourly_rate: float
    calculated_salary: float
    outstanding_salary: float
    sessions: list[SessionLine]


def _to_decimal(value) -> Decimal:
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value) -> Decimal:
    """Two decimal places, for display only; stored amounts keep full precision."""
    return _to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_amount(sessions: Iterable[AttendanceRecord], hourly_rate) -> Decimal:
    """(total minutes / 60) x hourly rate, without intermediate rounding."""
    total_minutes = sum(session.session_duration for session in sessions)
    if not total_minutes:
        return Decimal("0")
    return Decimal(total_minutes) * _to_decimal(hourly_rate) / MINUTES_PER_HOUR


def _present_sessions_query(coach_id: int, start: Optional[date] = None, end: Optional[date] = None):
    query = select(AttendanceRecord).where(
        AttendanceRecord.coach_id == coach_id,
        AttendanceRecord.status == AttendanceStatus.PRESENT,
        AttendanceRecord.session_duration > 0,
    )
    if start:
        query = query.where(AttendanceRecord.date >= start)
    if end:
        query = query.where(AttendanceRecord.date <= end)
    return query.order_by(AttendanceRecord.date, AttendanceRecord.id)


async def _get_coach_for_update(db: AsyncSession, coach_id: int) -> Optional[Coach]:
    """Load the coach with a row lock, refreshing any stale copy in the identity map."""
    result = await db.execute(
        select(Coach)
        .where(Coach.id == coach_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_paid_session_ids(db: AsyncSession, coach_id: int) -> set[int]:
    result = await db.execute(
        select(settlement_sessions.c.attendance_id)
        .join(SalarySettlement, SalarySettlement.id == settlement_sessions.c.settlement_id)
        .where(
            SalarySettlement.coach_id == coach_id,
            SalarySettlement.status == SettlementStatus.PAID,
        )
    )
    return set(result.scalars().all())


async def compute_unpaid_sessions(
    db: AsyncSession,
    coach_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[AttendanceRecord]:
    """Present sessions of the coach, optionally within [start, end], not yet covered by a paid settlement."""
    if start and end and start > end:
        raise ValidationError("Start date must not be after end date")

    paid_ids = await get_paid_session_ids(db, coach_id)
    query = _present_sessions_query(coach_id, start, end)
    if paid_ids:
        query = query.where(AttendanceRecord.id.not_in(paid_ids))

    result = await db.execute(query)
    return list(result.scalars().all())


async def pay_settlement(
    db: AsyncSession,
    coach_id: int,
    now: Optional[datetime] = None,
) -> Optional[SalarySettlement]:
    """
    Disburse everything the coach is owed.

    Creates one paid settlement linking every unpaid present session and
    resets the cached outstanding balance. Returns None, leaving the balance
    untouched, when there are no unpaid sessions.

    Raises:
        NotFound: coach does not exist
        NothingToPay: cached outstanding balance is zero
        SettlementConflict: another worker paid some of these sessions first
        PersistenceFailure: the database failed; nothing was written
    """
    now = now or local_now()

    async with coach_locks.hold(coach_id):
        try:
            coach = await _get_coach_for_update(db, coach_id)
            if coach is None:
                await db.rollback()
                raise NotFound("Coach not found")
            if coach.outstanding_salary <= 0:
                await db.rollback()
                raise NothingToPay("No outstanding salary to pay")

            unpaid = await compute_unpaid_sessions(db, coach_id)
            if not unpaid:
                await db.rollback()
                logger.info(f"Coach {coach_id} has no unpaid sessions, nothing settled")
                return None

            amount = calculate_amount(unpaid, coach.hourly_rate)
            settlement = SalarySettlement(
                coach_id=coach_id,
                month=now.month,
                year=now.year,
                amount=amount,
                status=SettlementStatus.PAID,
                payment_date=now,
                paid_sessions=unpaid,
            )
            db.add(settlement)
            coach.outstanding_salary = Decimal("0")
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Concurrent settlement detected for coach {coach_id}: {e}")
            raise SettlementConflict("Some of these sessions were already paid by another request") from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to settle salary for coach {coach_id}: {e}")
            raise PersistenceFailure("Failed to record salary payment, please retry") from e

    logger.info(
        f"Salary paid: coach={coach_id} settlement={settlement.id} "
        f"sessions={len(unpaid)} amount={round_money(amount)}"
    )
    return settlement


async def recalculate_outstanding(db: AsyncSession, coach_id: int) -> Coach:
    """Reset the cached balance to the value of the coach's unpaid sessions."""
    async with coach_locks.hold(coach_id):
        try:
            coach = await _get_coach_for_update(db, coach_id)
            if coach is None:
                await db.rollback()
                raise NotFound("Coach not found")

            unpaid = await compute_unpaid_sessions(db, coach_id)
            coach.outstanding_salary = calculate_amount(unpaid, coach.hourly_rate)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to recalculate outstanding salary for coach {coach_id}: {e}")
            raise PersistenceFailure("Failed to recalculate outstanding salary, please retry") from e

    return coach


async def _accrue_coach(
    db: AsyncSession,
    coach_id: int,
    start: date,
    end: date,
) -> Optional[SalarySettlement]:
    async with coach_locks.hold(coach_id):
        try:
            coach = await _get_coach_for_update(db, coach_id)
            if coach is None:
                await db.rollback()
                raise NotFound("Coach not found")

            already_accrued = await db.execute(
                select(func.coalesce(func.sum(SalarySettlement.amount), 0))
                .where(
                    SalarySettlement.coach_id == coach_id,
                    SalarySettlement.month == start.month,
                    SalarySettlement.year == start.year,
                    SalarySettlement.status == SettlementStatus.PENDING,
                )
            )
            recorded = _to_decimal(already_accrued.scalar() or 0)

            # Accrual recognizes the whole month, paid or not; earlier runs for
            # the same month only leave the difference to add
            result = await db.execute(_present_sessions_query(coach_id, start, end))
            month_total = calculate_amount(result.scalars().all(), coach.hourly_rate)
            amount = month_total - recorded
            if amount <= 0:
                await db.rollback()
                logger.info(f"Coach {coach_id} fully accrued for {start:%Y-%m}, nothing to add")
                return None

            await db.execute(
                update(Coach)
                .where(Coach.id == coach_id)
                .values(outstanding_salary=Coach.outstanding_salary + amount)
            )
            settlement = SalarySettlement(
                coach_id=coach_id,
                month=start.month,
                year=start.year,
                amount=amount,
                status=SettlementStatus.PENDING,
                paid_sessions=[],
            )
            db.add(settlement)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceFailure(f"Failed to accrue salary for coach {coach_id}") from e

    logger.info(f"Salary accrued: coach={coach_id} period={start:%Y-%m} amount={round_money(amount)}")
    return settlement


async def _run_per_coach(
    coach_ids: list[int],
    attempt: Callable[[int], Awaitable[Optional[SalarySettlement]]],
    max_concurrency: Optional[int],
    action: str,
) -> BatchResult:
    semaphore = asyncio.Semaphore(max_concurrency or settings.PAYROLL_MAX_CONCURRENCY)

    async def guarded(coach_id: int) -> Optional[SalarySettlement]:
        async with semaphore:
            return await attempt(coach_id)

    outcomes = await asyncio.gather(*(guarded(coach_id) for coach_id in coach_ids), return_exceptions=True)

    batch = BatchResult()
    for coach_id, outcome in zip(coach_ids, outcomes):
        if outcome is None or isinstance(outcome, NothingToPay):
            batch.skipped.append(coach_id)
        elif isinstance(outcome, Exception):
            logger.error(f"{action} failed for coach {coach_id}: {outcome}", exc_info=outcome)
            batch.record_failure(coach_id, outcome)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            batch.settlements.append(outcome)

    logger.info(
        f"{action} finished: {len(batch.settlements)} settled, "
        f"{len(batch.skipped)} skipped, {len(batch.failures)} failed"
    )
    return batch


async def pay_all_outstanding(
    session_factory: async_sessionmaker[AsyncSession],
    now: Optional[datetime] = None,
    max_concurrency: Optional[int] = None,
) -> BatchResult:
    """Pay every coach with a positive cached balance, each in its own session and transaction."""
    now = now or local_now()

    async with session_factory() as db:
        result = await db.execute(
            select(Coach.id).where(Coach.outstanding_salary > 0).order_by(Coach.id)
        )
        coach_ids = list(result.scalars().all())

    async def pay_one(coach_id: int) -> Optional[SalarySettlement]:
        async with session_factory() as db:
            return await pay_settlement(db, coach_id, now=now)

    return await _run_per_coach(coach_ids, pay_one, max_concurrency, "Salary payout")


async def accrue_monthly(
    session_factory: async_sessionmaker[AsyncSession],
    as_of: Optional[date] = None,
    max_concurrency: Optional[int] = None,
) -> BatchResult:
    """
    Recognize each coach's earnings for the calendar month containing as_of.

    Adds the month's present-session value to the cached balance and records a
    pending settlement. When the month was accrued before (a mid-month manual
    run), only the difference to the amount already recorded is added, so a
    re-run tops the month up and never accrues the same session twice.
    """
    as_of = as_of or local_today()
    start, end = month_bounds(as_of.year, as_of.month)

    async with session_factory() as db:
        result = await db.execute(select(Coach.id).order_by(Coach.id))
        coach_ids = list(result.scalars().all())

    async def accrue_one(coach_id: int) -> Optional[SalarySettlement]:
        async with session_factory() as db:
            return await _accrue_coach(db, coach_id, start, end)

    return await _run_per_coach(coach_ids, accrue_one, max_concurrency, f"Salary accrual {start:%Y-%m}")


async def get_salary_report(db: AsyncSession, coach_id: int, month: int, year: int) -> SalaryReport:
    """
    Salary breakdown for one calendar month.

    Lists every present session of the month with its paid flag; the totals
    cover only the sessions still unpaid.
    """
    try:
        start, end = month_bounds(year, month)
    except ValueError as e:
        raise ValidationError(str(e))

    coach = await get_coach(db, coach_id)

    result = await db.execute(_present_sessions_query(coach_id, start, end))
    month_sessions = list(result.scalars().all())
    unpaid = await compute_unpaid_sessions(db, coach_id, start, end)
    unpaid_ids = {session.id for session in unpaid}

    total_minutes = sum(session.session_duration for session in unpaid)
    return SalaryReport(
        coach_id=coach.id,
        coach_name=coach.name,
        month=month,
        year=year,
        total_sessions=len(unpaid),
        total_hours=float(round_money(Decimal(total_minutes) / MINUTES_PER_HOUR)),
        hourly_rate=float(coach.hourly_rate),
        calculated_salary=float(round_money(calculate_amount(unpaid, coach.hourly_rate))),
        outstanding_salary=float(round_money(coach.outstanding_salary)),
        sessions=[
            SessionLine(
                id=session.id,
                date=session.date,
                session_duration=session.session_duration,
                hours=float(round_money(Decimal(session.session_duration) / MINUTES_PER_HOUR)),
                is_paid=session.id not in unpaid_ids,
            )
            for session in month_sessions
        ],
    )


async def get_total_pending(db: AsyncSession) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(Coach.outstanding_salary), 0)).where(Coach.outstanding_salary > 0)
    )
    return _to_decimal(result.scalar() or 0)


async def list_settlements(
    db: AsyncSession,
    coach_id: Optional[int] = None,
    status: Optional[SettlementStatus] = None,
    year: Optional[int] = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[SalarySettlement], int]:
    """Newest first; returns one page and the total number of matches."""
    filters = []
    if coach_id is not None:
        filters.append(SalarySettlement.coach_id == coach_id)
    if status is not None:
        filters.append(SalarySettlement.status == status)
    if year is not None:
        filters.append(SalarySettlement.year == year)

    total_result = await db.execute(select(func.count(SalarySettlement.id)).where(*filters))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(SalarySettlement)
        .where(*filters)
        .order_by(SalarySettlement.created_at.desc(), SalarySettlement.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total
