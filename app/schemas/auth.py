"""
Pydantic schemas for authentication and user management.
"""

from enum import Enum
from pydantic import BaseModel
from typing import Optional


class Role(str, Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class Actor(BaseModel):
    """A verified caller, as produced by app.core.security.get_current_user."""

    id: str
    email: str
    name: str = ""
    role: Role
    department: Optional[str] = None
    student_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class UserLogin(BaseModel):
    email: str
    password: str


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: str
    department: str
    student_id: Optional[str] = None


class UserProfile(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    department: Optional[str] = None
    student_id: Optional[str] = None
    is_active: bool = True
