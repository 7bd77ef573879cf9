"""
Leave workflow — creation, decisions, admin override and scoped queries.

State machine:

    pending --approve--> approved
    pending --reject---> rejected

approved/rejected are terminal for the assigned faculty. Admins may re-decide
any leave (override), which overwrites the decision fields and timestamps.
Every decision bumps `version` and is written with a compare-and-swap on the
previous version, so two racing decisions cannot both succeed.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from app.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidDateRange,
    InvalidInput,
    InvalidTransition,
    NotFound,
    PastDateRejected,
)
from app.core.repository import LeaveRepository
from app.schemas.auth import Actor, Role
from app.schemas.leave import (
    COMMENT_MAX_LENGTH,
    DECISION_STATUSES,
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from app.services.assignment import resolve_faculty
from app.services.notifications import NotificationDispatcher, NotificationKind

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_date(value, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidInput.for_field(field, f"Invalid {field.replace('_', ' ')}")


def _load(repo: LeaveRepository, leave_id: str) -> LeaveRequest:
    row = repo.get_leave(leave_id)
    if row is None:
        raise NotFound()
    return LeaveRequest.model_validate(row)


# ═══════════════════════════════════════════════════════════
# CREATION
# ═══════════════════════════════════════════════════════════

def create_leave(
    repo: LeaveRepository,
    dispatcher: NotificationDispatcher,
    actor: Actor,
    leave_type: str,
    start_date,
    end_date,
    reason: str,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    if actor.role is not Role.STUDENT:
        raise Forbidden("Only students can apply for leave")

    errors = []
    if leave_type not in {t.value for t in LeaveType}:
        errors.append({"field": "leave_type", "message": "Invalid leave type"})
    reason = (reason or "").strip()
    if not REASON_MIN_LENGTH <= len(reason) <= REASON_MAX_LENGTH:
        errors.append({
            "field": "reason",
            "message": f"Reason must be between {REASON_MIN_LENGTH} and {REASON_MAX_LENGTH} characters",
        })
    if errors:
        raise InvalidInput(errors=errors)

    start = _as_date(start_date, "start_date")
    end = _as_date(end_date, "end_date")
    if start >= end:
        raise InvalidDateRange()

    now = now or _utcnow()
    if start < now.date():
        raise PastDateRejected()

    # Raises NoFacultyAvailable before anything is written.
    faculty = resolve_faculty(repo, actor.department)

    leave = LeaveRequest(
        id=str(uuid.uuid4()),
        student_id=actor.id,
        faculty_id=faculty["id"],
        leave_type=LeaveType(leave_type),
        start_date=start,
        end_date=end,
        reason=reason,
        status=LeaveStatus.PENDING,
        created_at=now,
        updated_at=now,
        version=1,
    )
    created = LeaveRequest.model_validate(repo.insert_leave(leave.to_row()))
    logger.info(
        "Leave %s created by student %s, assigned to faculty %s",
        created.id, actor.id, faculty["id"],
    )

    dispatcher.notify(
        faculty.get("email"),
        NotificationKind.APPLICATION_SUBMITTED,
        {
            "leave_id": created.id,
            "student_name": actor.name,
            "leave_type": created.leave_type.value,
            "start_date": created.start_date.isoformat(),
            "end_date": created.end_date.isoformat(),
            "duration": created.duration,
            "reason": created.reason,
        },
    )
    return created


# ═══════════════════════════════════════════════════════════
# DECISIONS
# ═══════════════════════════════════════════════════════════

def _validate_decision(new_status: str, comment: Optional[str]) -> tuple[LeaveStatus, Optional[str]]:
    errors = []
    if new_status not in {s.value for s in DECISION_STATUSES}:
        errors.append({"field": "status", "message": "Status must be approved or rejected"})
    comment = (comment or "").strip() or None
    if comment and len(comment) > COMMENT_MAX_LENGTH:
        errors.append({
            "field": "comment",
            "message": f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters",
        })
    if errors:
        raise InvalidInput(errors=errors)
    return LeaveStatus(new_status), comment


def _apply_decision(
    repo: LeaveRepository,
    dispatcher: NotificationDispatcher,
    actor: Actor,
    leave: LeaveRequest,
    status: LeaveStatus,
    comment: Optional[str],
    now: datetime,
) -> LeaveRequest:
    approved = status is LeaveStatus.APPROVED
    changes = {
        "status": status.value,
        "decided_by": actor.id,
        "decision_comment": comment,
        "approved_at": now.isoformat() if approved else None,
        "rejected_at": None if approved else now.isoformat(),
        "updated_at": now.isoformat(),
        "version": leave.version + 1,
    }
    row = repo.update_leave(leave.id, leave.version, changes)
    if row is None:
        logger.warning("Lost update on leave %s at version %d", leave.id, leave.version)
        raise Conflict()
    updated = LeaveRequest.model_validate(row)
    logger.info(
        "Leave %s %s by %s %s (was %s)",
        updated.id, status.value, actor.role.value, actor.id, leave.status.value,
    )

    dispatcher.notify(
        updated.student.email if updated.student else None,
        NotificationKind.DECISION_MADE,
        {
            "leave_id": updated.id,
            "status": status.value,
            "leave_type": updated.leave_type.value,
            "start_date": updated.start_date.isoformat(),
            "end_date": updated.end_date.isoformat(),
            "comment": comment or "",
        },
    )
    return updated


def decide(
    repo: LeaveRepository,
    dispatcher: NotificationDispatcher,
    actor: Actor,
    leave_id: str,
    new_status: str,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """Approve or reject a leave as its assigned faculty, or as an admin.

    A faculty decision on a leave that already left pending raises
    InvalidTransition. Admins go through the override path instead.
    """
    status, comment = _validate_decision(new_status, comment)
    leave = _load(repo, leave_id)

    if not actor.is_admin:
        if actor.role is not Role.FACULTY or leave.faculty_id != actor.id:
            raise Forbidden("Not authorized to update this leave")
        if leave.status.is_terminal:
            raise InvalidTransition(f"Leave has already been {leave.status.value}")

    return _apply_decision(repo, dispatcher, actor, leave, status, comment, now or _utcnow())


def override(
    repo: LeaveRepository,
    dispatcher: NotificationDispatcher,
    actor: Actor,
    leave_id: str,
    new_status: str,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """Admin re-decision; allowed whatever the current status is."""
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    status, comment = _validate_decision(new_status, comment)
    leave = _load(repo, leave_id)
    return _apply_decision(repo, dispatcher, actor, leave, status, comment, now or _utcnow())


# ═══════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════

def _scoped_to(actor: Actor, owner_id: Optional[str]) -> str:
    owner_id = owner_id or actor.id
    if owner_id != actor.id and not actor.is_admin:
        raise Forbidden("You can only view your own leaves")
    return owner_id


def student_leaves(repo: LeaveRepository, actor: Actor, student_id: Optional[str] = None) -> list[LeaveRequest]:
    student_id = _scoped_to(actor, student_id)
    return [LeaveRequest.model_validate(r) for r in repo.list_leaves(student_id=student_id)]


def approver_leaves(
    repo: LeaveRepository,
    actor: Actor,
    faculty_id: Optional[str] = None,
    pending_only: bool = False,
) -> list[LeaveRequest]:
    faculty_id = _scoped_to(actor, faculty_id)
    status = LeaveStatus.PENDING.value if pending_only else None
    rows = repo.list_leaves(faculty_id=faculty_id, status=status)
    return [LeaveRequest.model_validate(r) for r in rows]


def all_leaves(repo: LeaveRepository, actor: Actor, limit: Optional[int] = None) -> list[LeaveRequest]:
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    return [LeaveRequest.model_validate(r) for r in repo.list_leaves(limit=limit)]


def get_leave(repo: LeaveRepository, actor: Actor, leave_id: str) -> LeaveRequest:
    leave = _load(repo, leave_id)
    if not actor.is_admin and actor.id not in (leave.student_id, leave.faculty_id):
        raise Forbidden("Not authorized to view this leave")
    return leave
