import logging
from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from model.usermodels import DEFAULT_ANNUAL_LEAVE_ENTITLEMENT, User
from utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

MAX_CARRY_OVER = 5


def compute_carry_over(leave_balance: Optional[int]) -> int:
    """Unused days moved into the new year, capped at MAX_CARRY_OVER"""
    unused = max(0, leave_balance or 0)
    return min(MAX_CARRY_OVER, unused)


def reset_values(leave_balance: Optional[int], annual_leave_entitlement: Optional[int], year: int) -> Dict[str, int]:
    """Column values for a user's balance after the year rolls over to ``year``."""
    entitlement = annual_leave_entitlement
    if entitlement is None:
        entitlement = DEFAULT_ANNUAL_LEAVE_ENTITLEMENT
    carry_over = compute_carry_over(leave_balance)
    return {
        "carry_over_balance": carry_over,
        "leave_balance": entitlement + carry_over,
        "leave_year": year,
    }


def is_stale(user: User, year: int) -> bool:
    return user.leave_year is None or user.leave_year < year


def ensure_current_year(db: Session, user: User, clock: Clock = system_clock) -> User:
    """Bring ``user``'s balance up to the current calendar year.

    Safe to call on every login and before every balance check. The write is
    a conditional set guarded on the stale year, so concurrent callers
    converge on the same values and a balance debited after the first
    refresh is never overwritten by a late one.
    """
    if user is None:
        return user

    year = clock.current_year()
    if not is_stale(user, year):
        return user

    values = reset_values(user.leave_balance, user.annual_leave_entitlement, year)
    stale_year = user.leave_year
    stmt = (
        update(User)
        .where(User.id == user.id)
        .where((User.leave_year < year) | (User.leave_year.is_(None)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()

    if result.rowcount:
        logger.info(
            "Leave balance reset for new year",
            extra={
                "user_id": user.id,
                "from_year": stale_year,
                "to_year": year,
                "carry_over_balance": values["carry_over_balance"],
                "leave_balance": values["leave_balance"],
            },
        )
    else:
        logger.debug("Leave balance already refreshed by another caller", extra={"user_id": user.id})

    db.refresh(user)
    return user
