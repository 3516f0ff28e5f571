from academy.models.auth import User
from academy.models.domain import Coach, Student
from academy.models.attendance import AttendanceRecord
from academy.models.payroll import SalarySettlement, settlement_sessions

__all__ = [
    "User",
    "Coach",
    "Student",
    "AttendanceRecord",
    "SalarySettlement",
    "settlement_sessions",
]
