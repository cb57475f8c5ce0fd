import pytest
from sqlalchemy import delete

from model.leave_model import LeaveRequest, LeaveStatus
from model.usermodels import User
from utils.exceptions import (
    AlreadyApproved,
    AlreadyRejected,
    InsufficientBalance,
    InvalidDate,
    InvalidRange,
    LeaveRequestNotFound,
    NotPending,
    OverlappingRequest,
    RequesterNotFound,
)


@pytest.fixture
def staff(make_user):
    return make_user("staff@company.com")


@pytest.fixture
def manager(make_user):
    return make_user("manager@company.com", role="MANAGER")


class TestCreateLeaveRequest:
    def test_creates_pending_request_without_debit(self, leaves, staff, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06", "  Family trip  ")

        assert leave.status == LeaveStatus.PENDING
        assert leave.days == 5
        assert leave.reason == "Family trip"
        assert leave.approved_by is None
        assert reload(staff).leave_balance == 25

    def test_blank_reason_is_stored_as_none(self, leaves, staff):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-02", "   ")
        assert leave.reason is None

    def test_request_larger_than_balance_is_refused(self, leaves, make_user):
        user = make_user("low@company.com", leave_balance=3)

        with pytest.raises(InsufficientBalance) as exc_info:
            leaves.create_leave_request(user, "2026-03-02", "2026-03-05")

        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4
        assert leaves.get_my_leaves(user.id) == []

    def test_request_equal_to_balance_is_allowed(self, leaves, make_user):
        user = make_user("exact@company.com", leave_balance=4)
        leave = leaves.create_leave_request(user, "2026-03-02", "2026-03-05")
        assert leave.days == 4

    def test_invalid_dates(self, leaves, staff):
        with pytest.raises(InvalidDate):
            leaves.create_leave_request(staff, "tomorrow", "2026-03-05")
        with pytest.raises(InvalidRange):
            leaves.create_leave_request(staff, "2026-03-05", "2026-03-02")

    @pytest.mark.parametrize(
        "start, end",
        [
            ("2026-03-04", "2026-03-04"),
            ("2026-02-28", "2026-03-02"),
            ("2026-03-06", "2026-03-10"),
            ("2026-03-01", "2026-03-09"),
        ],
    )
    def test_overlap_with_pending_request_is_refused(self, leaves, staff, start, end):
        leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")

        with pytest.raises(OverlappingRequest):
            leaves.create_leave_request(staff, start, end)

    def test_adjacent_ranges_do_not_overlap(self, leaves, staff):
        leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leave = leaves.create_leave_request(staff, "2026-03-07", "2026-03-08")
        assert leave.status == LeaveStatus.PENDING

    def test_approved_request_blocks_dates(self, leaves, staff, manager):
        first = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leaves.approve_leave(first.id, str(manager.id))

        with pytest.raises(OverlappingRequest):
            leaves.create_leave_request(staff, "2026-03-05", "2026-03-05")

    def test_rejected_request_frees_dates(self, leaves, staff, manager):
        first = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leaves.reject_leave(first.id, str(manager.id))

        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        assert leave.id != first.id

    def test_other_users_do_not_overlap(self, leaves, staff, make_user):
        other = make_user("other@company.com")
        leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        assert leaves.create_leave_request(other, "2026-03-02", "2026-03-06").days == 5

    def test_stale_balance_is_rolled_over_first(self, leaves, make_user, reload):
        user = make_user("stale@company.com", leave_year=2025, leave_balance=0)

        leave = leaves.create_leave_request(user, "2026-03-02", "2026-03-06")

        assert leave.days == 5
        refreshed = reload(user)
        assert refreshed.leave_year == 2026
        assert refreshed.leave_balance == 25


class TestApproveLeave:
    def test_approval_debits_exactly_the_days(self, leaves, staff, manager, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")

        approved = leaves.approve_leave(leave.id, str(manager.id))

        assert approved.status == LeaveStatus.APPROVED
        assert approved.is_terminal
        assert approved.approved_by == str(manager.id)
        assert approved.decision_at is not None
        assert reload(staff).leave_balance == 20

    def test_second_approval_is_refused_without_second_debit(self, leaves, staff, manager, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leaves.approve_leave(leave.id, str(manager.id))

        with pytest.raises(AlreadyApproved):
            leaves.approve_leave(leave.id, str(manager.id))
        assert reload(staff).leave_balance == 20

    def test_rejected_request_cannot_be_approved(self, leaves, staff, manager, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leaves.reject_leave(leave.id, str(manager.id))

        with pytest.raises(AlreadyRejected):
            leaves.approve_leave(leave.id, str(manager.id))
        assert reload(staff).leave_balance == 25

    def test_unknown_request(self, leaves):
        with pytest.raises(LeaveRequestNotFound) as exc_info:
            leaves.approve_leave(9999, "1")
        assert exc_info.value.status_code == 404

    def test_balance_spent_since_submission(self, leaves, staff, manager, reload):
        first = leaves.create_leave_request(staff, "2026-03-02", "2026-03-16")
        second = leaves.create_leave_request(staff, "2026-04-01", "2026-04-15")
        leaves.approve_leave(first.id, str(manager.id))

        with pytest.raises(InsufficientBalance) as exc_info:
            leaves.approve_leave(second.id, str(manager.id))

        assert exc_info.value.available == 10
        assert exc_info.value.requested == 15
        assert reload(staff).leave_balance == 10
        assert leaves.get_leave(second.id).status == LeaveStatus.PENDING

    def test_approval_after_year_rollover(self, leaves, make_user, manager, clock, reload):
        clock.set(2025, 12, 1)
        user = make_user("rollover@company.com", leave_balance=3)
        leave = leaves.create_leave_request(user, "2025-12-29", "2025-12-31")

        clock.set(2026, 1, 2)
        leaves.approve_leave(leave.id, str(manager.id))

        refreshed = reload(user)
        assert refreshed.leave_year == 2026
        assert refreshed.carry_over_balance == 3
        assert refreshed.leave_balance == 25

    def test_super_admin_identity_is_recorded(self, leaves, staff):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-02")
        approved = leaves.approve_leave(leave.id, "super-admin")
        assert approved.approved_by == "super-admin"

    def test_requester_removed_since_submission(self, db, leaves, staff, manager):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        leave_id, approver = leave.id, str(manager.id)
        db.execute(delete(User).where(User.id == staff.id).execution_options(synchronize_session=False))
        db.commit()
        db.expunge_all()

        with pytest.raises(RequesterNotFound):
            leaves.approve_leave(leave_id, approver)

    def test_balance_spent_by_concurrent_approval(self, db, leaves, staff, manager, competing_write, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-11")
        competing_write(db, "UPDATE users SET leave_balance = 4 WHERE id = :id", id=staff.id)

        with pytest.raises(InsufficientBalance) as exc_info:
            leaves.approve_leave(leave.id, str(manager.id))

        assert exc_info.value.available == 4
        assert exc_info.value.requested == 10
        assert reload(staff).leave_balance == 4
        assert leaves.get_leave(leave.id).status == LeaveStatus.PENDING

    @pytest.mark.parametrize(
        "decided, error",
        [(LeaveStatus.REJECTED, AlreadyRejected), (LeaveStatus.APPROVED, AlreadyApproved)],
    )
    def test_concurrent_decision_undoes_the_debit(
        self, db, leaves, staff, manager, competing_write, reload, decided, error
    ):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        competing_write(
            db,
            "UPDATE leave_requests SET status = :status WHERE id = :id",
            status=decided.value,
            id=leave.id,
        )

        with pytest.raises(error):
            leaves.approve_leave(leave.id, str(manager.id))

        assert reload(staff).leave_balance == 25
        assert leaves.get_leave(leave.id).status == decided


class TestRejectLeave:
    def test_rejection_leaves_balance_alone(self, leaves, staff, manager, reload):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")

        rejected = leaves.reject_leave(leave.id, str(manager.id))

        assert rejected.status == LeaveStatus.REJECTED
        assert rejected.approved_by == str(manager.id)
        assert reload(staff).leave_balance == 25

    @pytest.mark.parametrize("decide", ["approve_leave", "reject_leave"])
    def test_only_pending_requests_can_be_rejected(self, leaves, staff, manager, decide):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        getattr(leaves, decide)(leave.id, str(manager.id))

        with pytest.raises(NotPending):
            leaves.reject_leave(leave.id, str(manager.id))

    def test_unknown_request(self, leaves):
        with pytest.raises(LeaveRequestNotFound):
            leaves.reject_leave(9999, "1")

    def test_concurrent_approval_wins(self, db, leaves, staff, manager, competing_write):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")
        competing_write(db, "UPDATE leave_requests SET status = 'APPROVED' WHERE id = :id", id=leave.id)

        with pytest.raises(NotPending) as exc_info:
            leaves.reject_leave(leave.id, str(manager.id))

        assert exc_info.value.details["status"] == "APPROVED"
        assert leaves.get_leave(leave.id).status == LeaveStatus.APPROVED
        assert leaves.get_leave(leave.id).approved_by is None


class TestListings:
    def test_listings_and_counts(self, leaves, staff, manager, make_user):
        other = make_user("other@company.com")
        a = leaves.create_leave_request(staff, "2026-03-02", "2026-03-03")
        b = leaves.create_leave_request(staff, "2026-04-02", "2026-04-03")
        c = leaves.create_leave_request(other, "2026-03-02", "2026-03-03")
        leaves.approve_leave(a.id, str(manager.id))
        leaves.reject_leave(b.id, str(manager.id))

        assert {leave.id for leave in leaves.get_my_leaves(staff.id)} == {a.id, b.id}
        assert [leave.id for leave in leaves.get_pending_leaves()] == [c.id]
        assert len(leaves.get_all_leaves()) == 3
        assert [leave.id for leave in leaves.get_all_leaves(LeaveStatus.APPROVED)] == [a.id]
        assert leaves.count_by_status() == {"PENDING": 1, "APPROVED": 1, "REJECTED": 1}


class TestLeaveRequestGuards:
    def test_days_are_fixed_once_set(self, leaves, staff):
        leave = leaves.create_leave_request(staff, "2026-03-02", "2026-03-06")

        with pytest.raises(ValueError):
            leave.days = 3
        assert leave.days == 5

    def test_days_must_be_positive(self):
        with pytest.raises(ValueError):
            LeaveRequest(requester_id=1, days=0)

    def test_approved_request_cannot_go_back_to_pending(self, leaves, staff, manager):
        leave = leaves.approve_leave(
            leaves.create_leave_request(staff, "2026-03-02", "2026-03-06").id, str(manager.id)
        )

        with pytest.raises(ValueError):
            leave.status = LeaveStatus.PENDING
        assert leave.status == LeaveStatus.APPROVED

    def test_rejected_request_cannot_be_flipped_to_approved(self, leaves, staff, manager):
        leave = leaves.reject_leave(
            leaves.create_leave_request(staff, "2026-03-02", "2026-03-06").id, str(manager.id)
        )

        with pytest.raises(ValueError):
            leave.status = LeaveStatus.APPROVED
