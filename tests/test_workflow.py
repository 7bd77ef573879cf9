from datetime import date, timedelta

import pytest

from app.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidDateRange,
    InvalidInput,
    InvalidTransition,
    NoFacultyAvailable,
    NotFound,
    PastDateRejected,
)
from app.schemas.leave import LeaveStatus
from app.services import workflow
from app.services.notifications import NotificationKind

from conftest import NOW

TODAY = NOW.date()
REASON = "Family function out of town"


def apply(repo, dispatcher, student, start_in=3, days=2, leave_type="personal", reason=REASON, now=NOW):
    start = TODAY + timedelta(days=start_in)
    return workflow.create_leave(
        repo, dispatcher, student,
        leave_type=leave_type,
        start_date=start,
        end_date=start + timedelta(days=days),
        reason=reason,
        now=now,
    )


# ---- creation ----

def test_create_leave_is_pending_with_inclusive_duration(repo, dispatcher, alice):
    leave = apply(repo, dispatcher, alice, start_in=1, days=4)

    assert leave.status is LeaveStatus.PENDING
    assert leave.duration == 5
    assert leave.student_id == "stu-alice"
    assert leave.faculty_id == "fac-bob"
    assert leave.created_at == NOW
    assert leave.version == 1
    assert leave.decided_by is None
    assert leave.approved_at is None and leave.rejected_at is None


def test_created_leave_is_hydrated_with_summaries(repo, dispatcher, alice):
    leave = apply(repo, dispatcher, alice)

    assert leave.student.name == "Alice Shah"
    assert leave.student.student_id == "CSE-001"
    assert leave.faculty.email == "bob@college.edu"
    assert leave.faculty.department == "CSE"


def test_create_leave_notifies_assigned_faculty(repo, dispatcher, alice):
    leave = apply(repo, dispatcher, alice)

    assert len(dispatcher.scheduled) == 1
    to_email, kind, payload = dispatcher.scheduled[0]
    assert to_email == "bob@college.edu"
    assert kind is NotificationKind.APPLICATION_SUBMITTED
    assert payload["leave_id"] == leave.id
    assert payload["student_name"] == "Alice Shah"


def test_start_today_is_allowed(repo, dispatcher, alice):
    leave = apply(repo, dispatcher, alice, start_in=0, days=1)
    assert leave.start_date == TODAY


def test_same_start_and_end_is_invalid_range(repo, dispatcher, alice):
    with pytest.raises(InvalidDateRange):
        workflow.create_leave(
            repo, dispatcher, alice, "sick",
            date(2026, 3, 10), date(2026, 3, 10), REASON, now=NOW,
        )


def test_end_before_start_is_invalid_range(repo, dispatcher, alice):
    with pytest.raises(InvalidDateRange):
        apply(repo, dispatcher, alice, days=-1)


def test_past_start_is_rejected(repo, dispatcher, alice):
    with pytest.raises(PastDateRejected):
        apply(repo, dispatcher, alice, start_in=-1, days=3)
    assert repo.count_leaves() == 0


def test_only_students_can_apply(repo, dispatcher, bob):
    with pytest.raises(Forbidden):
        apply(repo, dispatcher, bob)


def test_invalid_type_and_short_reason_reported_per_field(repo, dispatcher, alice):
    with pytest.raises(InvalidInput) as exc_info:
        apply(repo, dispatcher, alice, leave_type="vacation", reason="  short  ")

    fields = {e["field"] for e in exc_info.value.errors}
    assert fields == {"leave_type", "reason"}


def test_reason_longer_than_500_is_invalid(repo, dispatcher, alice):
    with pytest.raises(InvalidInput):
        apply(repo, dispatcher, alice, reason="x" * 501)


def test_reason_of_exactly_500_is_accepted(repo, dispatcher, alice):
    assert len(apply(repo, dispatcher, alice, reason="x" * 500).reason) == 500


def test_reason_minimum_is_ten_characters(repo, dispatcher, alice):
    assert apply(repo, dispatcher, alice, reason="x" * 10).reason == "x" * 10

    with pytest.raises(InvalidInput) as exc_info:
        apply(repo, dispatcher, alice, reason="x" * 9)
    assert exc_info.value.errors[0]["field"] == "reason"


def test_date_string_with_trailing_text_is_invalid(repo, dispatcher, alice):
    with pytest.raises(InvalidInput) as exc_info:
        workflow.create_leave(
            repo, dispatcher, alice,
            leave_type="personal",
            start_date="2026-03-10garbage",
            end_date="2026-03-12",
            reason=REASON,
            now=NOW,
        )
    assert exc_info.value.errors[0]["field"] == "start_date"
    assert repo.count_leaves() == 0


def test_iso_date_strings_are_accepted(repo, dispatcher, alice):
    leave = workflow.create_leave(
        repo, dispatcher, alice,
        leave_type="sick",
        start_date="2026-03-10",
        end_date="2026-03-12",
        reason=REASON,
        now=NOW,
    )
    assert leave.start_date == date(2026, 3, 10)
    assert leave.duration == 3


def test_no_faculty_in_department_persists_nothing(repo, dispatcher, frank):
    with pytest.raises(NoFacultyAvailable):
        apply(repo, dispatcher, frank)

    assert repo.count_leaves() == 0
    assert dispatcher.scheduled == []


# ---- decisions ----

def test_assigned_faculty_approves(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    later = NOW + timedelta(hours=2)

    decided = workflow.decide(repo, dispatcher, bob, leave.id, "approved", "Take care", now=later)

    assert decided.status is LeaveStatus.APPROVED
    assert decided.approved_at == later
    assert decided.rejected_at is None
    assert decided.decided_by == "fac-bob"
    assert decided.decision_comment == "Take care"
    assert decided.version == 2


def test_decision_notifies_student(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    workflow.decide(repo, dispatcher, bob, leave.id, "rejected", "Exams that week", now=NOW)

    to_email, kind, payload = dispatcher.scheduled[-1]
    assert to_email == "alice@college.edu"
    assert kind is NotificationKind.DECISION_MADE
    assert payload["status"] == "rejected"
    assert payload["comment"] == "Exams that week"


def test_second_faculty_decision_is_invalid_transition(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    workflow.decide(repo, dispatcher, bob, leave.id, "approved", None, now=NOW)

    with pytest.raises(InvalidTransition):
        workflow.decide(repo, dispatcher, bob, leave.id, "rejected", None, now=NOW)

    stored = workflow.get_leave(repo, bob, leave.id)
    assert stored.status is LeaveStatus.APPROVED
    assert stored.rejected_at is None


def test_other_faculty_cannot_decide(repo, dispatcher, alice, carol):
    leave = apply(repo, dispatcher, alice)
    with pytest.raises(Forbidden):
        workflow.decide(repo, dispatcher, carol, leave.id, "approved", None, now=NOW)


def test_student_cannot_decide_own_leave(repo, dispatcher, alice):
    leave = apply(repo, dispatcher, alice)
    with pytest.raises(Forbidden):
        workflow.decide(repo, dispatcher, alice, leave.id, "approved", None, now=NOW)


def test_decide_unknown_leave_is_not_found(repo, dispatcher, bob):
    with pytest.raises(NotFound):
        workflow.decide(repo, dispatcher, bob, "missing", "approved", None, now=NOW)


def test_decide_rejects_non_terminal_status(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    with pytest.raises(InvalidInput):
        workflow.decide(repo, dispatcher, bob, leave.id, "pending", None, now=NOW)


def test_comment_over_200_chars_is_rejected(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    with pytest.raises(InvalidInput) as exc_info:
        workflow.decide(repo, dispatcher, bob, leave.id, "approved", "y" * 201, now=NOW)
    assert exc_info.value.errors[0]["field"] == "comment"


def test_comment_of_exactly_200_chars_is_stored(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    decided = workflow.decide(repo, dispatcher, bob, leave.id, "rejected", "y" * 200, now=NOW)
    assert decided.decision_comment == "y" * 200


def test_admin_decide_on_approved_leave_overrides(repo, dispatcher, alice, bob, grace):
    leave = apply(repo, dispatcher, alice)
    workflow.decide(repo, dispatcher, bob, leave.id, "approved", None, now=NOW)
    later = NOW + timedelta(days=1)

    overridden = workflow.decide(repo, dispatcher, grace, leave.id, "rejected", "Policy", now=later)

    assert overridden.status is LeaveStatus.REJECTED
    assert overridden.rejected_at == later
    assert overridden.approved_at is None
    assert overridden.decided_by == "adm-grace"
    assert overridden.faculty_id == "fac-bob"


def test_override_requires_admin(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice)
    with pytest.raises(Forbidden):
        workflow.override(repo, dispatcher, bob, leave.id, "approved", None, now=NOW)


def test_repeated_override_keeps_latest_timestamp(repo, dispatcher, alice, grace):
    leave = apply(repo, dispatcher, alice)
    first = NOW + timedelta(hours=1)
    second = NOW + timedelta(hours=5)

    workflow.override(repo, dispatcher, grace, leave.id, "approved", "ok", now=first)
    again = workflow.override(repo, dispatcher, grace, leave.id, "approved", "ok", now=second)

    assert again.status is LeaveStatus.APPROVED
    assert again.approved_at == second
    assert again.rejected_at is None
    assert again.decision_comment == "ok"
    assert repo.count_leaves() == 1


def test_stale_version_raises_conflict(repo, dispatcher, alice, bob, grace):
    leave = apply(repo, dispatcher, alice)
    stale = workflow.get_leave(repo, bob, leave.id)
    workflow.override(repo, dispatcher, grace, leave.id, "rejected", None, now=NOW)

    with pytest.raises(Conflict):
        workflow._apply_decision(
            repo, dispatcher, bob, stale, LeaveStatus.APPROVED, None, NOW,
        )


# ---- queries ----

def test_my_leaves_and_pending_return_the_same_record(repo, dispatcher, alice, bob):
    leave = apply(repo, dispatcher, alice, days=3)

    mine = workflow.student_leaves(repo, alice)
    pending = workflow.approver_leaves(repo, bob, pending_only=True)

    assert [l.id for l in mine] == [leave.id]
    assert [l.id for l in pending] == [leave.id]
    assert mine[0].duration == pending[0].duration == 4


def test_pending_queue_drops_decided_leaves(repo, dispatcher, alice, bob):
    first = apply(repo, dispatcher, alice, now=NOW)
    second = apply(repo, dispatcher, alice, start_in=10, now=NOW + timedelta(minutes=1))
    workflow.decide(repo, dispatcher, bob, first.id, "approved", None, now=NOW)

    assert [l.id for l in workflow.approver_leaves(repo, bob, pending_only=True)] == [second.id]
    assert [l.id for l in workflow.approver_leaves(repo, bob)] == [second.id, first.id]


def test_queries_are_scoped_to_the_caller(repo, dispatcher, alice, carol, grace):
    apply(repo, dispatcher, alice)

    with pytest.raises(Forbidden):
        workflow.student_leaves(repo, carol, student_id="stu-alice")
    with pytest.raises(Forbidden):
        workflow.all_leaves(repo, alice)
    assert len(workflow.student_leaves(repo, grace, student_id="stu-alice")) == 1


def test_get_leave_is_limited_to_owner_approver_and_admin(repo, dispatcher, alice, bob, carol, grace):
    leave = apply(repo, dispatcher, alice)

    for reader in (alice, bob, grace):
        assert workflow.get_leave(repo, reader, leave.id).id == leave.id
    with pytest.raises(Forbidden):
        workflow.get_leave(repo, carol, leave.id)
