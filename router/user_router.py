import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from Schema.user_schema import UserCreate, UserResponse
from db.database import get_db
from service.leave_balance_service import ensure_current_year
from service.user_service import UserService
from utils.clock import Clock, get_clock
from utils.exceptions import ServiceError, to_http_exception
from utils.token import CurrentUser, get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")


def get_user_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> UserService:
    return UserService(db, clock)


def create_user_from_payload(payload: UserCreate, service: UserService):
    try:
        return service.create_user(
            full_name=payload.full_name,
            email=payload.email,
            password=payload.password,
            role=payload.role.value,
            profile_picture_url=payload.profile_picture_url,
            annual_leave_entitlement=payload.annual_leave_entitlement,
        )
    except ServiceError as exc:
        raise to_http_exception(exc)
    except Exception:
        service.db.rollback()
        logger.exception("Error creating user", extra={"email": payload.email})
        raise HTTPException(status_code=500, detail="Failed to create user")


@router.get("/me", response_model=UserResponse)
def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Current authenticated user, leave figures brought up to the current year"""
    if getattr(current_user, "is_super_admin", False):
        return current_user
    return ensure_current_year(service.db, current_user, service.clock)


@router.get("", response_model=List[UserResponse])
def get_all_users(
    current_user: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.list_users()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    current_user: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Create a user with a balance seeded from the annual entitlement"""
    return create_user_from_payload(payload, service)
