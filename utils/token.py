import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from db.database import get_db
from model.usermodels import DEFAULT_ANNUAL_LEAVE_ENTITLEMENT, User, UserRole
from redis_client import RedisClient, get_redis_client
from utils.clock import Clock, get_clock
from utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SUPER_ADMIN_ID = "super-admin"

security = HTTPBearer(auto_error=False)


class SuperAdmin:
    """Bootstrap administrator configured through the environment. Never
    stored in the database and has no leave balance of its own."""

    is_super_admin = True
    id = SUPER_ADMIN_ID
    role = UserRole.ADMIN.value
    profile_picture_url = None
    annual_leave_entitlement = DEFAULT_ANNUAL_LEAVE_ENTITLEMENT
    leave_balance = DEFAULT_ANNUAL_LEAVE_ENTITLEMENT
    carry_over_balance = 0

    def __init__(self, full_name: str, email: str, leave_year: int):
        self.full_name = full_name
        self.email = email
        self.leave_year = leave_year


CurrentUser = Union[User, SuperAdmin]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed hash in the database
        return False


def create_access_token(data: dict, settings: Settings, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expiry_minutes
    to_encode.update({"iat": now, "exp": now + timedelta(minutes=minutes), "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str, settings: Settings) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def token_payload_for(user: User) -> dict:
    return {
        "sub": str(user.id),
        "user_id": str(user.id),
        "role": user.role,
        "email": user.email,
    }


def seconds_until_expiry(payload: dict) -> int:
    exp = payload.get("exp")
    if not exp:
        return 1
    return max(1, int(exp - datetime.now(timezone.utc).timestamp()))


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Missing Bearer token.",
        )
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    redis_client: RedisClient = Depends(get_redis_client),
    clock: Clock = Depends(get_clock),
) -> CurrentUser:
    payload = verify_access_token(token, settings)
    if payload is None or redis_client.is_token_blacklisted(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired authentication token.",
        )

    user_id = payload.get("user_id")
    if user_id == SUPER_ADMIN_ID:
        return SuperAdmin(
            full_name=settings.super_admin_name,
            email=payload.get("email") or settings.super_admin_email,
            leave_year=clock.current_year(),
        )

    user = None
    if user_id is not None and str(user_id).isdigit():
        user = db.get(User, int(user_id))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User associated with this token no longer exists.",
        )
    return user


def require_role(*allowed_roles: UserRole):
    allowed = {role.value if isinstance(role, UserRole) else role for role in allowed_roles}

    def _require_role(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not authorized to perform this action.",
            )
        return user
    return _require_role


require_admin = require_role(UserRole.ADMIN)
require_manager = require_role(UserRole.MANAGER, UserRole.ADMIN)
require_staff = require_role(UserRole.STAFF)


def approver_identity(user: CurrentUser) -> str:
    return str(user.id)
