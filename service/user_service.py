import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from model.usermodels import DEFAULT_ANNUAL_LEAVE_ENTITLEMENT, User, UserRole
from utils.clock import Clock, system_clock
from utils.exceptions import DuplicateEmail, InvalidRole
from utils.token import hash_password

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserService:
    """User lookup and creation. Also the lookup capability the leave
    service is given to resolve requesters."""

    def __init__(self, db: Session, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    def count_users(self) -> int:
        return self.db.query(User).count()

    def create_user(
        self,
        full_name: str,
        email: str,
        password: str,
        role: str = UserRole.STAFF.value,
        profile_picture_url: Optional[str] = None,
        annual_leave_entitlement: Optional[int] = None,
    ) -> User:
        """Create a user whose balance is seeded from the entitlement for the current year"""
        role = (role or UserRole.STAFF.value).upper()
        if role not in {r.value for r in UserRole}:
            raise InvalidRole(details={"role": role})

        email = normalize_email(email)
        if self.get_by_email(email):
            raise DuplicateEmail(details={"email": email})

        entitlement = DEFAULT_ANNUAL_LEAVE_ENTITLEMENT if annual_leave_entitlement is None else annual_leave_entitlement
        user = User(
            full_name=full_name.strip(),
            email=email,
            password=hash_password(password),
            role=role,
            profile_picture_url=profile_picture_url or None,
            annual_leave_entitlement=entitlement,
            leave_balance=entitlement,
            carry_over_balance=0,
            leave_year=self.clock.current_year(),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info("User created", extra={"user_id": user.id, "role": user.role})
        return user

    def record_login(self, user: User) -> None:
        user.last_login = self.clock.naive_utcnow()
        self.db.commit()
