import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from Schema.leave_management_schema import ResetSummaryResponse
from Schema.user_schema import InviteResponse, UserCreate, UserInvite, UserResponse
from db.database import get_session_factory
from model.usermodels import DEFAULT_ANNUAL_LEAVE_ENTITLEMENT
from router.user_router import create_user_from_payload, get_user_service
from service.leave_reset_service import run_yearly_reset
from service.user_service import UserService
from utils import mail_config_utils
from utils.clock import Clock, get_clock
from utils.exceptions import ServiceError, to_http_exception
from utils.settings import Settings, get_settings
from utils.token import CurrentUser, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


@router.post("/create-user", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    current_user: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return create_user_from_payload(payload, service)


@router.post("/invite-user", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    payload: UserInvite,
    current_user: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    """Create the account with a random temporary password and mail it to the invitee"""
    temporary_password = secrets.token_hex(8)
    try:
        user = service.create_user(
            full_name=payload.full_name,
            email=payload.email,
            password=temporary_password,
            role=payload.role.value,
            annual_leave_entitlement=DEFAULT_ANNUAL_LEAVE_ENTITLEMENT,
        )
    except ServiceError as exc:
        raise to_http_exception(exc)

    user_out = UserResponse.model_validate(user)
    try:
        await mail_config_utils.send_invite_email(
            settings,
            to=user.email,
            full_name=user.full_name,
            role=user.role,
            temporary_password=temporary_password,
            year=clock.current_year(),
            login_url=f"{settings.api_base_url}/auth/login",
        )
    except Exception:
        # the account exists either way; the admin has to pass the credentials on manually
        logger.exception("Failed to send invite email", extra={"user_id": user.id})
        return JSONResponse(
            status_code=500,
            content=jsonable_encoder(
                {"message": "User created but failed to send invite email", "user": user_out}
            ),
        )

    return InviteResponse(message="User invited successfully", user=user_out)


@router.post("/leave-reset", response_model=ResetSummaryResponse)
def trigger_leave_reset(
    force: bool = Query(False, description="Recompute every user, not only those from an earlier year"),
    current_user: CurrentUser = Depends(require_admin),
    session_factory=Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
):
    """Run the yearly carry-over job on demand"""
    try:
        summary = run_yearly_reset(session_factory, clock, force=force)
    except Exception:
        logger.exception("Yearly leave reset failed")
        raise HTTPException(status_code=500, detail="Yearly leave reset failed")

    return ResetSummaryResponse(
        year=summary.year,
        updated=summary.updated,
        skipped=summary.skipped,
        failed=summary.failed,
    )
