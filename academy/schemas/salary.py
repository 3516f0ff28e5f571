from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from academy.models.enums import SettlementStatus


class SettlementRead(BaseModel):
    id: int
    coach_id: int
    month: int
    year: int
    amount: float
    status: SettlementStatus
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    paid_session_ids: list[int] = []
    created_at: datetime

    class Config:
        from_attributes = True


class PayRequest(BaseModel):
    coach_id: int


class AccrueRequest(BaseModel):
    """Manual accrual trigger; both fields default to the current month."""
    year: Optional[int] = Field(None, ge=2000)
    month: Optional[int] = Field(None, ge=1, le=12)


class CoachFailureRead(BaseModel):
    coach_id: int
    error: str
    message: str

    class Config:
        from_attributes = True


class BatchResultRead(BaseModel):
    settlements: list[SettlementRead]
    skipped: list[int]
    failures: list[CoachFailureRead]

    class Config:
        from_attributes = True


class TotalPending(BaseModel):
    total: float
    currency: str


# Reporting shape consumed by the admin dashboard, camelCase on the wire.
class SessionLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    date: date
    session_duration: int
    hours: float
    is_paid: bool


class SalaryReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    coach_id: int
    coach_name: str
    month: int
    year: int
    total_sessions: int
    total_hours: float
    hourly_rate: float
    calculated_salary: float
    outstanding_salary: float
    sessions: list[SessionLineRead]
