from enum import Enum


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UserType(str, Enum):
    STUDENT = "student"
    COACH = "coach"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"


class SettlementStatus(str, Enum):
    PENDING = "pending"  # accrued, not yet disbursed
    PAID = "paid"  # disbursed and linked to the sessions it covers
