"""
Security module — Firebase JWT verification + Mock auth + Role guard + is_active enforcement.

Auth Flow:
1. User logs in (mock: POST /api/auth/login, firebase: Firebase SDK) → gets a token
2. Frontend sends the token as a Bearer credential
3. Backend verifies it (mock-{email} lookup, or Firebase Admin SDK)
4. Backend fetches the user profile from the `users` table
5. Backend checks: is user.is_active?
6. Request proceeds with a verified Actor (id, role, department)

Only users created by an admin can log in. Unknown emails/UIDs are rejected.
"""

import logging
import os
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.database import get_repository
from app.core.exceptions import Forbidden, Unauthenticated
from app.core.repository import LeaveRepository
from app.schemas.auth import Actor, Role

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)

MOCK_TOKEN_PREFIX = "mock-"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # malformed hash in the users table
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


def actor_from_row(user_data: dict) -> Actor:
    if not user_data.get("is_active", True):
        raise Forbidden("Your account has been deactivated. Contact your admin.")
    return Actor(
        id=user_data["id"],
        email=user_data["email"],
        name=user_data.get("name", ""),
        role=Role(user_data["role"]),
        department=user_data.get("department"),
        student_id=user_data.get("student_id"),
    )


# ---------------------------------------------------------------------------
# Token verification — the core auth function
# ---------------------------------------------------------------------------
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    repo: LeaveRepository = Depends(get_repository),
) -> Actor:
    """
    Validate the Bearer token and return the verified Actor.
    Only users already registered in the users table can authenticate.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token")
    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token, repo)

    return _firebase_auth(token, repo)


def _mock_auth(token: str, repo: LeaveRepository) -> Actor:
    """Mock mode: tokens look like mock-{email}."""
    if token.startswith(MOCK_TOKEN_PREFIX):
        user_data = repo.get_user_by_email(token[len(MOCK_TOKEN_PREFIX):])
        if user_data:
            return actor_from_row(user_data)

    raise Unauthenticated("Invalid token. Only registered users can login.")


def _firebase_auth(token: str, repo: LeaveRepository) -> Actor:
    """Firebase mode: verify JWT, fetch profile, enforce is_active."""
    init_firebase()
    from firebase_admin import auth as fb_auth

    try:
        decoded = fb_auth.verify_id_token(token)
    except (ValueError, fb_auth.InvalidIdTokenError, fb_auth.ExpiredIdTokenError) as exc:
        logger.info("Rejected Firebase token: %s", exc)
        raise Unauthenticated("Invalid or expired Firebase token")

    user_data = repo.get_user_by_firebase_uid(decoded["uid"])
    if not user_data:
        raise Forbidden("You are not registered. Contact your admin.")
    return actor_from_row(user_data)


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[Role]):
    """
    Usage:
        @router.get("/admin-only")
        async def endpoint(user: Actor = Depends(require_role([Role.ADMIN]))):
    """

    async def role_checker(
        user: Actor = Depends(get_current_user),
    ) -> Actor:
        if user.role not in allowed_roles:
            raise Forbidden(
                f"Role '{user.role.value}' not authorized. Required: {[r.value for r in allowed_roles]}"
            )
        return user

    return role_checker
