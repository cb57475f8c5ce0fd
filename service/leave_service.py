import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from model.leave_model import BLOCKING_STATUSES, LeaveRequest, LeaveStatus
from model.usermodels import User
from service.leave_balance_service import ensure_current_year
from service.user_service import UserService
from utils.clock import Clock, system_clock
from utils.exceptions import (
    AlreadyApproved,
    AlreadyRejected,
    InsufficientBalance,
    LeaveRequestNotFound,
    NegativeBalance,
    NotPending,
    OverlappingRequest,
    RequesterNotFound,
)
from utils.leave_utils import DateInput, calculate_leave_days, to_calendar_date

logger = logging.getLogger(__name__)


class LeaveService:
    """Leave request lifecycle: PENDING -> APPROVED | REJECTED.

    Balances are only checked when a request is created and debited when it
    is approved. Every transition is a conditional update on
    ``status = PENDING`` so a request leaves PENDING exactly once, and the
    approval debit is conditional on the balance still covering the request.
    Both writes of an approval share one transaction.
    """

    def __init__(self, db: Session, users: UserService, clock: Clock = system_clock):
        self.db = db
        self.users = users
        self.clock = clock

    def has_overlapping_leave(
        self,
        requester_id: int,
        start_date: date,
        end_date: date,
    ) -> bool:
        """Check if [start_date, end_date] overlaps any pending/approved leave of the user"""
        return self.db.query(LeaveRequest.id).filter(
            LeaveRequest.requester_id == requester_id,
            LeaveRequest.status.in_(BLOCKING_STATUSES),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        ).first() is not None

    def create_leave_request(
        self,
        requester: User,
        start_date: DateInput,
        end_date: DateInput,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        ensure_current_year(self.db, requester, self.clock)

        days = calculate_leave_days(start_date, end_date)
        start = to_calendar_date(start_date)
        end = to_calendar_date(end_date)

        if days > requester.leave_balance:
            raise InsufficientBalance(available=requester.leave_balance, requested=days)

        if self.has_overlapping_leave(requester.id, start, end):
            raise OverlappingRequest(details={"start_date": start.isoformat(), "end_date": end.isoformat()})

        leave = LeaveRequest(
            requester_id=requester.id,
            start_date=start,
            end_date=end,
            days=days,
            reason=(reason or "").strip() or None,
            status=LeaveStatus.PENDING,
        )
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)

        logger.info(
            "Leave request created",
            extra={"leave_id": leave.id, "requester_id": requester.id, "days": days},
        )
        return leave

    def get_leave(self, leave_id: int) -> LeaveRequest:
        leave = self.db.get(LeaveRequest, leave_id)
        if leave is None:
            raise LeaveRequestNotFound(details={"leave_id": leave_id})
        return leave

    @staticmethod
    def _ensure_approvable(leave: LeaveRequest) -> None:
        if leave.status == LeaveStatus.APPROVED:
            raise AlreadyApproved(details={"leave_id": leave.id})
        if leave.status == LeaveStatus.REJECTED:
            raise AlreadyRejected(details={"leave_id": leave.id})

    def _decide(self, leave_id: int, new_status: LeaveStatus, approver_id: str):
        now = self.clock.naive_utcnow()
        stmt = (
            update(LeaveRequest)
            .where(LeaveRequest.id == leave_id)
            .where(LeaveRequest.status == LeaveStatus.PENDING)
            .values(status=new_status, approved_by=approver_id, decision_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt)

    def approve_leave(self, leave_id: int, approver_id: str) -> LeaveRequest:
        leave = self.get_leave(leave_id)
        self._ensure_approvable(leave)

        requester = self.users.get_user(leave.requester_id)
        if requester is None:
            raise RequesterNotFound(details={"leave_id": leave.id})

        # the request may predate a year rollover
        ensure_current_year(self.db, requester, self.clock)

        days = leave.days
        available = requester.leave_balance
        if days > available:
            raise InsufficientBalance(
                available=available,
                requested=days,
                message="Insufficient leave balance to approve this request. Balance may have changed since submission.",
            )
        if available - days < 0:
            raise NegativeBalance(details={"available": available, "requested": days})

        try:
            debit = self.db.execute(
                update(User)
                .where(User.id == requester.id)
                .where(User.leave_balance >= days)
                .values(leave_balance=User.leave_balance - days)
                .execution_options(synchronize_session=False)
            )
            if debit.rowcount != 1:
                # a concurrent approval spent the balance first
                self.db.rollback()
                self.db.refresh(requester)
                raise InsufficientBalance(available=requester.leave_balance, requested=days)

            transition = self._decide(leave.id, LeaveStatus.APPROVED, approver_id)
            if transition.rowcount != 1:
                # decided by someone else in the meantime; undo the debit
                self.db.rollback()
                self.db.refresh(leave)
                self._ensure_approvable(leave)
                raise AlreadyApproved(details={"leave_id": leave.id})

            self.db.commit()
        except (InsufficientBalance, AlreadyApproved, AlreadyRejected):
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        self.db.refresh(requester)
        logger.info(
            "Leave request approved",
            extra={
                "leave_id": leave.id,
                "requester_id": requester.id,
                "approved_by": approver_id,
                "days": days,
                "remaining_balance": requester.leave_balance,
            },
        )
        return leave

    def reject_leave(self, leave_id: int, approver_id: str) -> LeaveRequest:
        leave = self.get_leave(leave_id)
        if leave.status != LeaveStatus.PENDING:
            raise NotPending(details={"leave_id": leave.id, "status": leave.status.value})

        try:
            transition = self._decide(leave.id, LeaveStatus.REJECTED, approver_id)
            if transition.rowcount != 1:
                self.db.rollback()
                self.db.refresh(leave)
                raise NotPending(details={"leave_id": leave.id, "status": leave.status.value})
            self.db.commit()
        except NotPending:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        logger.info("Leave request rejected", extra={"leave_id": leave.id, "approved_by": approver_id})
        return leave

    def get_my_leaves(self, requester_id: int) -> List[LeaveRequest]:
        return (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.requester_id == requester_id)
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
            .all()
        )

    def get_pending_leaves(self) -> List[LeaveRequest]:
        return self.get_all_leaves(LeaveStatus.PENDING)

    def get_all_leaves(self, status: Optional[LeaveStatus] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest).options(joinedload(LeaveRequest.requester))
        if status:
            query = query.filter(LeaveRequest.status == status)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in LeaveStatus}
        rows = self.db.query(LeaveRequest.status, func.count(LeaveRequest.id)).group_by(LeaveRequest.status).all()
        for status, total in rows:
            counts[LeaveStatus(status).value] = total
        return counts
