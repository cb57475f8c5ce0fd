import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from Schema.auth_schema import LoginRequest, LoginResponse
from Schema.user_schema import UserResponse
from db.database import get_db
from redis_client import RedisClient, get_redis_client
from service.leave_balance_service import ensure_current_year
from service.user_service import UserService, normalize_email
from utils.clock import Clock, get_clock
from utils.settings import Settings, get_settings
from utils.token import (
    SUPER_ADMIN_ID,
    SuperAdmin,
    create_access_token,
    get_bearer_token,
    seconds_until_expiry,
    token_payload_for,
    verify_access_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    """Authenticate a user and return a JWT plus the profile with current leave figures"""
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=400, detail="Email and password are required.")

    users = UserService(db, clock)
    user = users.get_by_email(credentials.email)
    if not user or not verify_password(credentials.password, user.password):
        logger.info("Login failed", extra={"email": normalize_email(credentials.email)})
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    try:
        # Ensure leave balance is up to date for the current year on every login.
        ensure_current_year(db, user, clock)
        users.record_login(user)
    except Exception:
        db.rollback()
        logger.exception("Failed to refresh user on login", extra={"user_id": user.id})
        raise HTTPException(status_code=500, detail="Internal server error.")

    access_token = create_access_token(token_payload_for(user), settings)
    logger.info("User logged in", extra={"user_id": user.id, "role": user.role})
    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post("/admin/login", response_model=LoginResponse)
def super_admin_login(
    credentials: LoginRequest,
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    """Bootstrap super admin: credentials come from the environment, never the database"""
    email = normalize_email(credentials.email)
    password = (credentials.password or "").strip()
    if not email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required.")

    if not settings.super_admin_configured:
        logger.warning("Super admin login attempted but not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Super admin login is not configured. Set SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD in .env.",
        )

    if email != settings.super_admin_email.lower() or password != settings.super_admin_password:
        logger.info("Super admin login failed")
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    admin = SuperAdmin(full_name=settings.super_admin_name, email=email, leave_year=clock.current_year())
    payload = {"sub": SUPER_ADMIN_ID, "user_id": SUPER_ADMIN_ID, "role": admin.role, "email": email}
    access_token = create_access_token(payload, settings, expires_minutes=settings.super_admin_token_expiry_minutes)
    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(admin))


# Route for User logout
@router.post("/logout")
def logout(
    token: str = Depends(get_bearer_token),
    settings: Settings = Depends(get_settings),
    redis_client: RedisClient = Depends(get_redis_client),
):
    """Revoke the bearer token until it would have expired anyway"""
    payload = verify_access_token(token, settings)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired authentication token.")

    revoked = redis_client.blacklist_token(token, seconds_until_expiry(payload))
    return {"message": "Logged out successfully", "token_revoked": revoked}
