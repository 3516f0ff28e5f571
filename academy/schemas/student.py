from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class StudentRead(BaseModel):
    id: int
    code: str
    name: str
    email: str
    coach_id: Optional[int] = None
    joining_date: date
    active: bool
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    coach_id: Optional[int] = None
    joining_date: Optional[date] = None
    user_id: Optional[int] = None


class StudentCoachAssign(BaseModel):
    coach_id: Optional[int] = None


class StudentCount(BaseModel):
    count: int
