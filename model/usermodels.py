from datetime import datetime
from enum import Enum as pyEnum

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from db.database import Base

DEFAULT_ANNUAL_LEAVE_ENTITLEMENT = 25


class UserRole(str, pyEnum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password = Column(String(100), nullable=False)
    role = Column(String(10), nullable=False, default=UserRole.STAFF.value)  # ADMIN, MANAGER, STAFF
    profile_picture_url = Column(String(255), nullable=True)
    last_login = Column(DateTime, default=None)

    # Yearly leave tracking: leave_balance is only valid for leave_year
    annual_leave_entitlement = Column(Integer, nullable=False, default=DEFAULT_ANNUAL_LEAVE_ENTITLEMENT)
    leave_balance = Column(Integer, nullable=False, default=DEFAULT_ANNUAL_LEAVE_ENTITLEMENT)
    carry_over_balance = Column(Integer, nullable=False, default=0)
    leave_year = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    leave_requests = relationship(
        "LeaveRequest",
        back_populates="requester",
        cascade="all, save-update, delete",
    )
