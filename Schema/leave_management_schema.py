from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from model.leave_model import LeaveStatus


# Pydantic Models
class LeaveApplicationCreate(BaseModel):
    # kept as optional text so missing or unparsable dates reach the leave engine
    # and come back as InvalidDate
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    reason: Optional[str] = None


class RequesterSummary(BaseModel):
    id: int
    full_name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class LeaveApplicationResponse(BaseModel):
    id: int
    requester_id: int
    start_date: date
    end_date: date
    days: int
    reason: Optional[str] = None
    status: LeaveStatus
    approved_by: Optional[str] = None
    decision_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeaveApplicationWithRequester(LeaveApplicationResponse):
    requester: Optional[RequesterSummary] = None


class ResetSummaryResponse(BaseModel):
    year: int
    updated: int
    skipped: int
    failed: int

    class Config:
        from_attributes = True
