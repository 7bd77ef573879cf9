"""
Leaves router — Apply (student), review queues (faculty), decisions, admin listing.
"""

from fastapi import APIRouter, Depends, status
from app.core.database import get_repository
from app.core.repository import LeaveRepository
from app.core.security import get_current_user, require_role
from app.schemas.auth import Actor, Role
from app.schemas.leave import LeaveApply, LeaveStatusUpdate
from app.services import workflow
from app.services.notifications import NotificationDispatcher, get_dispatcher
from app.utils.response import success_response

router = APIRouter(prefix="/api/leaves", tags=["Leaves"])


def _dump(leaves):
    return [leave.model_dump(mode="json") for leave in leaves]


@router.post("/apply", status_code=status.HTTP_201_CREATED)
async def apply_leave(
    body: LeaveApply,
    user: Actor = Depends(require_role([Role.STUDENT])),
    repo: LeaveRepository = Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    leave = workflow.create_leave(
        repo, dispatcher, user,
        leave_type=body.leave_type,
        start_date=body.start_date,
        end_date=body.end_date,
        reason=body.reason,
    )
    return success_response(
        data=leave.model_dump(mode="json"),
        message="Leave application submitted successfully",
        warnings=dispatcher.warnings,
    )


@router.get("/my-leaves")
async def my_leaves(
    user: Actor = Depends(require_role([Role.STUDENT])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=_dump(workflow.student_leaves(repo, user)))


@router.get("/pending")
async def pending_leaves(
    user: Actor = Depends(require_role([Role.FACULTY])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=_dump(workflow.approver_leaves(repo, user, pending_only=True)))


@router.get("/faculty-leaves")
async def faculty_leaves(
    user: Actor = Depends(require_role([Role.FACULTY])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=_dump(workflow.approver_leaves(repo, user)))


@router.get("/all")
async def all_leaves(
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=_dump(workflow.all_leaves(repo, user)))


@router.get("/{leave_id}")
async def get_leave(
    leave_id: str,
    user: Actor = Depends(get_current_user),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=workflow.get_leave(repo, user, leave_id).model_dump(mode="json"))


@router.patch("/{leave_id}/status")
async def update_leave_status(
    leave_id: str,
    body: LeaveStatusUpdate,
    user: Actor = Depends(require_role([Role.FACULTY, Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    leave = workflow.decide(repo, dispatcher, user, leave_id, body.status, body.comment)
    return success_response(
        data=leave.model_dump(mode="json"),
        message=f"Leave {leave.status.value} successfully",
        warnings=dispatcher.warnings,
    )
