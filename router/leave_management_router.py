import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from Schema.leave_management_schema import (
    LeaveApplicationCreate,
    LeaveApplicationResponse,
    LeaveApplicationWithRequester,
)
from db.database import get_db
from model.leave_model import LeaveStatus
from model.usermodels import User
from service.leave_service import LeaveService
from service.user_service import UserService
from utils.clock import Clock, get_clock
from utils.exceptions import ServiceError, to_http_exception
from utils.token import CurrentUser, approver_identity, require_admin, require_manager, require_staff

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/leaves")


def get_leave_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaveService:
    return LeaveService(db, UserService(db, clock), clock)


def _create(payload: LeaveApplicationCreate, current_user: User, service: LeaveService):
    try:
        return service.create_leave_request(
            current_user,
            payload.start_date,
            payload.end_date,
            payload.reason,
        )
    except ServiceError as exc:
        logger.info(
            "Leave request refused",
            extra={"requester_id": current_user.id, "kind": exc.kind},
        )
        raise to_http_exception(exc)
    except Exception:
        logger.exception("Failed to create leave request", extra={"requester_id": current_user.id})
        raise HTTPException(status_code=500, detail="Failed to create leave request")


# API Endpoints
@router.post("", response_model=LeaveApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    payload: LeaveApplicationCreate,
    current_user: User = Depends(require_staff),
    service: LeaveService = Depends(get_leave_service),
):
    """Submit a leave request. The balance is checked here and only debited on approval."""
    return _create(payload, current_user, service)


@router.post("/request", response_model=LeaveApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_leave_request_alias(
    payload: LeaveApplicationCreate,
    current_user: User = Depends(require_staff),
    service: LeaveService = Depends(get_leave_service),
):
    return _create(payload, current_user, service)


@router.get("/my", response_model=List[LeaveApplicationResponse])
def get_my_leaves(
    current_user: User = Depends(require_staff),
    service: LeaveService = Depends(get_leave_service),
):
    """Leave requests of the authenticated user, newest first"""
    return service.get_my_leaves(current_user.id)


@router.get("/pending", response_model=List[LeaveApplicationWithRequester])
def get_pending_leaves(
    current_user: CurrentUser = Depends(require_manager),
    service: LeaveService = Depends(get_leave_service),
):
    return service.get_pending_leaves()


@router.get("/all", response_model=List[LeaveApplicationWithRequester])
def get_all_leaves(
    status: Optional[LeaveStatus] = Query(None, description="Filter by status"),
    current_user: CurrentUser = Depends(require_admin),
    service: LeaveService = Depends(get_leave_service),
):
    return service.get_all_leaves(status)


@router.api_route("/{leave_id}/approve", methods=["PATCH", "PUT"], response_model=LeaveApplicationResponse)
def approve_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(require_manager),
    service: LeaveService = Depends(get_leave_service),
):
    """Approve a pending request and debit the requester's balance"""
    try:
        return service.approve_leave(leave_id, approver_identity(current_user))
    except ServiceError as exc:
        logger.info("Leave approval refused", extra={"leave_id": leave_id, "kind": exc.kind})
        raise to_http_exception(exc)
    except Exception:
        logger.exception("Failed to approve leave request", extra={"leave_id": leave_id})
        raise HTTPException(status_code=500, detail="Failed to approve leave request")


@router.api_route("/{leave_id}/reject", methods=["PATCH", "PUT"], response_model=LeaveApplicationResponse)
def reject_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(require_manager),
    service: LeaveService = Depends(get_leave_service),
):
    """Reject a pending request. Balances are untouched."""
    try:
        return service.reject_leave(leave_id, approver_identity(current_user))
    except ServiceError as exc:
        logger.info("Leave rejection refused", extra={"leave_id": leave_id, "kind": exc.kind})
        raise to_http_exception(exc)
    except Exception:
        logger.exception("Failed to reject leave request", extra={"leave_id": leave_id})
        raise HTTPException(status_code=500, detail="Failed to reject leave request")
