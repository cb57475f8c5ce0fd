from datetime import datetime
from enum import Enum as pyEnum

from sqlalchemy import Column, DateTime, Enum, Integer, String, Date, ForeignKey, Index
from sqlalchemy.orm import relationship, validates

from db.database import Base


class LeaveStatus(str, pyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)
# statuses that still hold their dates on the calendar
BLOCKING_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id", onupdate="CASCADE", ondelete="CASCADE"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    status = Column(Enum(LeaveStatus), default=LeaveStatus.PENDING, nullable=False)
    approved_by = Column(String(50), nullable=True)  # user id or super-admin
    decision_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    requester = relationship("User", back_populates="leave_requests")

    __table_args__ = (
        Index("ix_leave_requests_requester_dates", "requester_id", "start_date", "end_date"),
    )

    @validates("days")
    def validate_days(self, key, value):
        if self.days is not None and value != self.days:
            raise ValueError("Leave days are fixed once the request is created")
        if value is None or value < 1:
            raise ValueError("Leave days must be a positive integer")
        return value

    @validates("status")
    def validate_status(self, key, value):
        if self.status in TERMINAL_STATUSES and value != self.status:
            raise ValueError(f"Leave request is already {self.status.value}")
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
