from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class CoachRead(BaseModel):
    id: int
    code: str
    name: str
    email: str
    hourly_rate: float
    outstanding_salary: float
    joining_date: date
    active: bool
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CoachCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    hourly_rate: Optional[Decimal] = Field(None, gt=0)
    joining_date: Optional[date] = None
    user_id: Optional[int] = None


class CoachUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    hourly_rate: Optional[Decimal] = Field(None, gt=0)
    active: Optional[bool] = None


class HourlyRateUpdate(BaseModel):
    hourly_rate: Decimal = Field(..., gt=0)


class CoachOutstanding(BaseModel):
    coach_id: int
    outstanding_salary: float


class CoachCount(BaseModel):
    count: int
