"""
Admin operations: dashboard stats, department breakdown, user creation.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from app.core.config import settings
from app.core.exceptions import Forbidden, InvalidInput
from app.core.repository import LeaveRepository
from app.core.security import get_password_hash, init_firebase
from app.schemas.auth import Actor, Role
from app.schemas.leave import LeaveRequest, LeaveStatus

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _require_admin(actor: Actor):
    if not actor.is_admin:
        raise Forbidden("Admin access required")


def dashboard(repo: LeaveRepository, actor: Actor) -> dict:
    _require_admin(actor)
    stats = {
        "total_users": repo.count_users(),
        "total_students": repo.count_users(role=Role.STUDENT.value),
        "total_faculty": repo.count_users(role=Role.FACULTY.value),
        "total_leaves": repo.count_leaves(),
        "pending_leaves": repo.count_leaves(status=LeaveStatus.PENDING.value),
        "approved_leaves": repo.count_leaves(status=LeaveStatus.APPROVED.value),
        "rejected_leaves": repo.count_leaves(status=LeaveStatus.REJECTED.value),
    }
    recent = repo.list_leaves(limit=settings.RECENT_LEAVES_LIMIT)
    return {
        "stats": stats,
        "recent_leaves": [LeaveRequest.model_validate(r) for r in recent],
    }


def department_stats(repo: LeaveRepository, actor: Actor) -> list[dict]:
    """Leave counts grouped by the requesting student's department."""
    _require_admin(actor)
    by_department: dict[str, dict] = {}
    for row in repo.list_leaves():
        student = row.get("student") or {}
        department = student.get("department")
        if not department:
            continue
        if department not in by_department:
            by_department[department] = {
                "department": department,
                "total_leaves": 0,
                "approved_leaves": 0,
                "pending_leaves": 0,
                "rejected_leaves": 0,
            }
        entry = by_department[department]
        entry["total_leaves"] += 1
        entry[f"{row['status']}_leaves"] += 1
    return sorted(by_department.values(), key=lambda d: d["department"])


def create_user(
    repo: LeaveRepository,
    actor: Actor,
    name: str,
    email: str,
    password: str,
    role: str,
    department: str,
    student_id: Optional[str] = None,
) -> dict:
    _require_admin(actor)

    name = (name or "").strip()
    email = (email or "").strip().lower()
    department = (department or "").strip()

    errors = []
    if len(name) < 2:
        errors.append({"field": "name", "message": "Name must be at least 2 characters"})
    if not EMAIL_RE.match(email):
        errors.append({"field": "email", "message": "Please provide a valid email"})
    if len(password or "") < 6:
        errors.append({"field": "password", "message": "Password must be at least 6 characters"})
    if role not in {r.value for r in Role}:
        errors.append({"field": "role", "message": "Invalid role"})
    if len(department) < 2:
        errors.append({"field": "department", "message": "Department must be at least 2 characters"})
    if errors:
        raise InvalidInput(errors=errors)

    if repo.get_user_by_email(email):
        raise InvalidInput.for_field("email", "User already exists")

    if role != Role.STUDENT.value:
        student_id = None
    firebase_uid = f"mock-{email}"

    # In Firebase mode, create the Firebase user too
    if settings.AUTH_MODE == "firebase":
        from firebase_admin import auth as fb_auth

        init_firebase()
        try:
            fb_user = fb_auth.create_user(email=email, password=password, display_name=name)
        except (ValueError, fb_auth.EmailAlreadyExistsError) as exc:
            raise InvalidInput.for_field("email", f"Firebase user creation failed: {exc}")
        firebase_uid = fb_user.uid

    user_data = {
        "id": str(uuid.uuid4()),
        "name": name,
        "email": email,
        "role": role,
        "department": department,
        "student_id": (student_id or "").strip() or None,
        "firebase_uid": firebase_uid,
        "is_active": True,
        "password_hash": get_password_hash(password),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    created = repo.insert_user(user_data)
    logger.info("User %s (%s) created by admin %s", created["id"], role, actor.id)
    return public_user(created)


def public_user(user_data: dict) -> dict:
    return {k: v for k, v in user_data.items() if k != "password_hash"}


def list_users(repo: LeaveRepository, actor: Actor) -> list[dict]:
    _require_admin(actor)
    return [public_user(u) for u in repo.list_users()]
