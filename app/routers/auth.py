"""
Auth router — Login, current user profile.

Rules:
- Only users created by an admin can login
- Mock mode: email + password checked against the stored bcrypt hash,
  the returned token is mock-{email}
- Firebase mode: the client signs in with the Firebase SDK and sends the JWT
"""

from fastapi import APIRouter, Depends
from app.core.config import settings
from app.core.database import get_repository
from app.core.exceptions import InvalidInput, Unauthenticated
from app.core.repository import LeaveRepository
from app.core.security import MOCK_TOKEN_PREFIX, actor_from_row, get_current_user, verify_password
from app.schemas.auth import Actor, UserLogin
from app.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login")
async def login(body: UserLogin, repo: LeaveRepository = Depends(get_repository)):
    if settings.AUTH_MODE != "mock":
        raise InvalidInput("Use Firebase SDK for login, then call /api/auth/me with JWT.")

    user_data = repo.get_user_by_email(body.email.strip().lower())
    hashed_pw = user_data.get("password_hash") if user_data else None
    if not hashed_pw or not verify_password(body.password, hashed_pw):
        raise Unauthenticated("Invalid email or password.")

    actor = actor_from_row(user_data)
    return success_response(
        data={"token": f"{MOCK_TOKEN_PREFIX}{actor.email}", "user": actor.model_dump(mode="json")},
        message="Login successful",
    )


@router.get("/me")
async def me(user: Actor = Depends(get_current_user)):
    return success_response(data=user.model_dump(mode="json"))
