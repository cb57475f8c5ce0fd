import logging
from dataclasses import dataclass, field
from typing import Callable, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from model.usermodels import User
from service.leave_balance_service import is_stale, reset_values
from utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


@dataclass
class ResetSummary:
    year: int
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    failed_user_ids: List[int] = field(default_factory=list)


def _reset_user(db: Session, user_id: int, year: int, force: bool) -> bool:
    """Apply the yearly carry-over to one user. Returns False when the user
    did not need a reset."""
    for _ in range(MAX_ATTEMPTS):
        user = db.get(User, user_id, populate_existing=True)
        if user is None:
            return False
        if not force and not is_stale(user, year):
            return False

        values = reset_values(user.leave_balance, user.annual_leave_entitlement, year)
        # only write over the balance that was read; an approval in between
        # changes it and the row is read again
        stmt = (
            update(User)
            .where(User.id == user_id)
            .where(User.leave_balance == user.leave_balance)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if user.leave_year is None:
            stmt = stmt.where(User.leave_year.is_(None))
        else:
            stmt = stmt.where(User.leave_year == user.leave_year)

        result = db.execute(stmt)
        if result.rowcount == 1:
            db.commit()
            return True
        db.rollback()

    raise RuntimeError(f"Balance for user {user_id} kept changing during reset")


def run_yearly_reset(
    session_factory: Callable[[], Session],
    clock: Clock = system_clock,
    force: bool = False,
) -> ResetSummary:
    """Carry over unused leave (max 5 days) for every user.

    By default only users whose balance belongs to an earlier year are
    touched, so running the job twice in one year changes nothing. With
    ``force`` every user is recomputed from the stored balance.
    """
    year = clock.current_year()
    summary = ResetSummary(year=year)
    logger.info(f"Starting yearly leave reset for year {year}", extra={"force": force})

    db = session_factory()
    try:
        user_ids = [row[0] for row in db.query(User.id).order_by(User.id).all()]
    finally:
        db.close()

    for user_id in user_ids:
        db = session_factory()
        try:
            if _reset_user(db, user_id, year, force):
                summary.updated += 1
            else:
                summary.skipped += 1
        except Exception:
            db.rollback()
            summary.failed += 1
            summary.failed_user_ids.append(user_id)
            logger.exception("Yearly leave reset failed for user", extra={"user_id": user_id, "year": year})
        finally:
            db.close()

    logger.info(
        f"Yearly reset complete. Updated {summary.updated} users for year {year}.",
        extra={"skipped": summary.skipped, "failed": summary.failed},
    )
    return summary
