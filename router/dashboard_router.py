from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from Schema.user_schema import DashboardStats, DashboardUser, LeaveRequestCounts
from db.database import get_db
from model.leave_model import LeaveStatus
from service.leave_service import LeaveService
from service.user_service import UserService
from utils.clock import Clock, get_clock
from utils.token import CurrentUser, require_admin

router = APIRouter(prefix="/dashboard")


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    current_user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Total users and leave request counts per status"""
    users = UserService(db, clock)
    counts = LeaveService(db, users, clock).count_by_status()
    pending = counts[LeaveStatus.PENDING.value]
    approved = counts[LeaveStatus.APPROVED.value]
    rejected = counts[LeaveStatus.REJECTED.value]
    return DashboardStats(
        total_users=users.count_users(),
        leave_requests=LeaveRequestCounts(
            pending=pending,
            approved=approved,
            rejected=rejected,
            total=pending + approved + rejected,
        ),
    )


@router.get("/users", response_model=List[DashboardUser])
def get_users(
    current_user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return UserService(db, clock).list_users()
