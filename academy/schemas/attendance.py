import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from academy.models.enums import AttendanceStatus


class AttendanceMark(BaseModel):
    student_id: int
    coach_id: int
    status: AttendanceStatus
    date: Optional[datetime.date] = None  # defaults to today
    session_duration: Optional[int] = Field(None, description="Minutes; defaults to 60 when present")
    notes: Optional[str] = None


class AttendanceRead(BaseModel):
    id: int
    student_id: int
    coach_id: int
    date: datetime.date
    status: AttendanceStatus
    session_duration: int
    duration_hours: float
    notes: Optional[str] = None
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class AttendancePeriod(str, Enum):
    WEEK = "week"  # last 7 days
    MONTH = "month"  # same day last month until today


class AttendanceStats(BaseModel):
    present: int
    absent: int
    leave: int
    total_days: int
    percentage: float
    total_duration: int  # minutes of present sessions
    start_date: datetime.date
    end_date: datetime.date

    class Config:
        from_attributes = True


class OwnAttendanceRead(BaseModel):
    attendance: list[AttendanceRead]
    stats: AttendanceStats

    class Config:
        from_attributes = True
