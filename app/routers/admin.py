"""
Admin router — Dashboard, department stats, leave override, user management.

Admin can:
- See overall user/leave counts and the most recent applications
- Override any leave decision, including already decided ones
- Create students, faculty and other admins
"""

from fastapi import APIRouter, Depends, status
from app.core.config import settings
from app.core.database import get_repository
from app.core.repository import LeaveRepository
from app.core.security import require_role
from app.schemas.auth import Actor, Role, UserCreate
from app.schemas.leave import LeaveStatusUpdate
from app.services import admin as admin_service
from app.services import workflow
from app.services.notifications import NotificationDispatcher, get_dispatcher
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/dashboard")
async def dashboard(
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
):
    result = admin_service.dashboard(repo, user)
    return success_response(data={
        "stats": result["stats"],
        "recent_leaves": [leave.model_dump(mode="json") for leave in result["recent_leaves"]],
    })


@router.get("/stats/department")
async def department_stats(
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=admin_service.department_stats(repo, user))


@router.patch("/override-leave/{leave_id}")
async def override_leave(
    leave_id: str,
    body: LeaveStatusUpdate,
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    leave = workflow.override(repo, dispatcher, user, leave_id, body.status, body.comment)
    return success_response(
        data=leave.model_dump(mode="json"),
        message=f"Leave {leave.status.value} by admin override",
        warnings=dispatcher.warnings,
    )


# ═══════════════════════════════════════════════════════════
# USER MANAGEMENT
# ═══════════════════════════════════════════════════════════

@router.post("/create-user", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
):
    created = admin_service.create_user(repo, user, **body.model_dump())
    return success_response(
        data={
            "user": created,
            "mock_token": f"mock-{created['email']}" if settings.AUTH_MODE == "mock" else None,
        },
        message=f"User '{created['name']}' ({created['role']}) created successfully",
    )


@router.get("/users")
async def list_users(
    user: Actor = Depends(require_role([Role.ADMIN])),
    repo: LeaveRepository = Depends(get_repository),
):
    return success_response(data=admin_service.list_users(repo, user))
