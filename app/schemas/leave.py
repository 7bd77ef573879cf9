"""
Pydantic schemas for leave requests and decisions.
"""

from enum import Enum
from pydantic import BaseModel, computed_field
from typing import Optional
from datetime import date, datetime


class LeaveType(str, Enum):
    SICK = "sick"
    ACADEMIC = "academic"
    PERSONAL = "personal"
    EMERGENCY = "emergency"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


DECISION_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500
COMMENT_MAX_LENGTH = 200


# ---- Request bodies ----
class LeaveApply(BaseModel):
    leave_type: str
    start_date: date
    end_date: date
    reason: str


class LeaveStatusUpdate(BaseModel):
    status: str
    comment: Optional[str] = None


# ---- Records ----
class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    department: Optional[str] = None
    student_id: Optional[str] = None


class LeaveRequest(BaseModel):
    id: str
    student_id: str
    faculty_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    decided_by: Optional[str] = None
    decision_comment: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int = 1

    student: Optional[UserSummary] = None
    faculty: Optional[UserSummary] = None

    @computed_field
    @property
    def duration(self) -> int:
        """Inclusive day count, start and end both counted."""
        return (self.end_date - self.start_date).days + 1

    def to_row(self) -> dict:
        """Storage shape: no hydrated users, no derived fields."""
        row = self.model_dump(mode="json", exclude={"student", "faculty"})
        row.pop("duration", None)
        return row
